"""Storage of the links between articles and tags."""

from __future__ import annotations

from datetime import datetime

from inkblog.blog_schema import ArticleTag
from inkblog.store import Database


class ArticleTagRepository:
    """Creates and removes article-tag links."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def _table(self) -> str:
        return self._db.table(ArticleTag.table)

    def create(self, article_tag: ArticleTag) -> ArticleTag:
        """Store a link; the creation time is set when missing."""
        if article_tag.created_at is None:
            article_tag.created_at = datetime.now()
        self._db.connection.execute(
            f"INSERT INTO {self._table} (article_id, tag_id, created_at) VALUES (?, ?, ?)",
            (article_tag.article_id, article_tag.tag_id, article_tag.created_at),
        )
        return article_tag

    def delete_by_article_id(self, article_id: int) -> None:
        """Remove every link of an article."""
        self._db.connection.execute(
            f"DELETE FROM {self._table} WHERE article_id = ?", (article_id,)
        )

    def delete_by_tag_id(self, tag_id: int) -> None:
        """Remove every link of a tag."""
        self._db.connection.execute(f"DELETE FROM {self._table} WHERE tag_id = ?", (tag_id,))