# inkblog

The storage and business rules of a small blog, kept in one SQLite database. It uses only the standard library.

## What it covers

- **Articles** (`ArticleRepository`, `ArticleService`)
  - Create, update and delete. Only the author may change or delete an article.
  - Search with `ArticleQueryParams`. You can filter by tag ids (an article must carry all of them), category ids, author, status, keyword in the title or summary, and time range (`today`, `week`, `month`, `year`, `all`). Results can be sorted by `newest`, `views`, `likes`, `favorites` or `comments`, and are paged.
  - Hot and latest lists, which include published articles only.
  - View counting. For a signed-in user, views are also kept as a history.
  - Like and favourite toggles.
  - Lists of the articles a user liked, favourited, viewed or commented on.
  - `ArticleService.save_cover(filename, data, static_dir)` writes a cover image to `<static_dir>/pic/covers/` and returns its URL. The file name must end in `.jpg`, `.jpeg`, `.png`, `.gif`, `.webp` or `.bmp`.
- **Categories** (`CategoryRepository`, `CategoryService`)
  - Create, update and delete. Names are unique, and a category that still has articles cannot be deleted.
  - Paged lists with statistics: totals, the category with the most published articles, and per-category article counts.
- **Tags** (`TagRepository`, `TagService`, `ArticleTagRepository`)
  - Create a tag. If the name is already taken, you get the existing tag back.
  - Rename a tag. Renaming to a name another tag already has is refused.
  - Delete a tag. Its links to articles go with it.
  - Paged lists with statistics, and hot tags.
- **Interactions** (`InteractionRepository`): likes, favourites and views of articles by users.
- **Comments** (`CommentRepository`, `CommentService`)
  - Threaded replies up to 20 levels deep.
  - A new comment waits for review (`CommentStatus.PENDING`). A comment posted with `is_admin=True` is approved at once.
  - Review lists with filters and ordering.
  - Recursive deletion.
  - An article's `comment_count` counts only approved comments. It rises when a comment is approved and falls when approved comments are deleted.

Requests and results are dataclasses in `inkblog.blog_schema` and `inkblog.comment_schema`. Invalid request values raise `BadRequestError` when the request object is built.

## Installation

```
pip install .
```

To also install the test dependencies, use `pip install .[test]`.

## Usage

```python
from inkblog.store import Database, InMemoryUserDirectory
from inkblog.category_repo import CategoryRepository
from inkblog.category_service import CategoryService
from inkblog.article_tag_repo import ArticleTagRepository
from inkblog.article_repo import ArticleRepository
from inkblog.interaction_repo import InteractionRepository
from inkblog.comment_repo import CommentRepository
from inkblog.article_service import ArticleService
from inkblog.comment_service import CommentService
from inkblog.blog_schema import CreateArticleRequest, CreateCategoryRequest
from inkblog.comment_schema import CreateCommentRequest

db = Database(":memory:", table_prefix="blog_", auto_migrate=True)
users = InMemoryUserDirectory()
users.add(1, "alice", "/pic/avatars/alice.png")

categories = CategoryRepository(db)
articles = ArticleRepository(db)
article_tags = ArticleTagRepository(db)
interactions = InteractionRepository(db)
comments = CommentRepository(db, users)

category_service = CategoryService(categories)
article_service = ArticleService(db, articles, categories, article_tags, interactions, users)
comment_service = CommentService(db, comments, articles)

cat = category_service.create_category(CreateCategoryRequest(name="Notes"))
art = article_service.create_article(
    1, CreateArticleRequest(title="Hello", content="First post", status="published",
                            category_id=cat.id)
)
liked = article_service.like_article(1, art.id)   # toggles; liked.interacted is True
reply = comment_service.create_comment(
    1, CreateCommentRequest(content="Nice!", article_id=art.id), is_admin=True
)
db.close()
```

`Database` can also be used as a context manager. `Database.transaction()` runs a block atomically. Nested blocks become savepoints.

## Errors

Failures raise exceptions from `inkblog.store`. Each one is a subclass of `AppError` and carries the matching HTTP code in `status`:

| Exception | `status` |
| --- | --- |
| `NotFoundError` | 404 |
| `ConflictError` | 409 |
| `ForbiddenError` | 403 |
| `BadRequestError` | 400 |

## What it does not do

- **No HTTP layer.** There is no HTTP server, no routing and no request parsing. These are libraries for an application to call.
- **No authentication.** Callers must say who the user is (`user_id`) and whether that user is an administrator (`is_admin`).
- **No user accounts.**
  - Names and avatars come from a `UserDirectory`. `InMemoryUserDirectory` is the only one provided.
  - Filtering articles by author name reads the database's `user` table. The package creates that table but never fills it, so the application must insert those rows itself.

## Tests

```
pytest
```