"""Blog articles, categories, tags, reader interactions and moderated comments on SQLite."""

__version__ = "1.0.0"