"""Storage of articles, their counters and the lists built from them."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from inkblog.blog_schema import (
    Article,
    ArticleListItem,
    ArticlePaginationResult,
    ArticleQueryParams,
    ArticleTag,
    Tag,
    UserInteraction,
    total_pages,
)
from inkblog.store import Database, NotFoundError

_FIELDS = (
    "id",
    "title",
    "content",
    "summary",
    "author_id",
    "category_id",
    "cover",
    "status",
    "view_count",
    "like_count",
    "comment_count",
    "favorite_count",
)

_SORT_COLUMNS = {
    "views": "a.view_count DESC",
    "likes": "a.like_count DESC",
    "favorites": "a.favorite_count DESC",
    "comments": "a.comment_count DESC",
}

_COUNTERS = ("view_count", "like_count", "favorite_count", "comment_count")


def _columns(alias: str = "a") -> str:
    p = f"{alias}." if alias else ""
    cols = [f"{p}{name} AS {name}" for name in _FIELDS]
    cols.append(f'{p}created_at AS "created_at [INKTIME]"')
    cols.append(f'{p}updated_at AS "updated_at [INKTIME]"')
    return ", ".join(cols)


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def time_range_start(time_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest creation time matching a time range, or None for no limit.

    "today" starts at midnight, "week" on Monday, "month" on the first of the
    month and "year" on the first of January; anything else has no limit.
    """
    now = now or datetime.now()
    if time_range == "today":
        return _midnight(now)
    if time_range == "week":
        return _midnight(now - timedelta(days=now.weekday()))
    if time_range == "month":
        return _midnight(now.replace(day=1))
    if time_range == "year":
        return _midnight(now.replace(month=1, day=1))
    return None


def _list_item(article: Article) -> ArticleListItem:
    return ArticleListItem(
        id=article.id,
        title=article.title,
        summary=article.summary,
        author_id=article.author_id,
        category_id=article.category_id,
        cover=article.cover,
        status=article.status,
        view_count=article.view_count,
        like_count=article.like_count,
        comment_count=article.comment_count,
        favorite_count=article.favorite_count,
        created_at=article.created_at,
    )


def _paging(page: int, page_size: int) -> tuple[int, int]:
    return (page if page > 0 else 1, page_size if page_size > 0 else 10)


class ArticleRepository:
    """Reads and writes articles."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def _table(self) -> str:
        return self._db.table(Article.table)

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._db.connection.execute(sql, params)

    def _fetch_items(self, sql: str, params: Sequence[Any]) -> list[ArticleListItem]:
        rows = self._execute(sql, params).fetchall()
        return [_list_item(Article(**dict(row))) for row in rows]

    def create(self, article: Article) -> Article:
        """Store a new article and fill in its id and times."""
        now = datetime.now()
        article.created_at = article.created_at or now
        article.updated_at = article.updated_at or now
        values = [getattr(article, name) for name in _FIELDS]
        values += [article.created_at, article.updated_at]
        names = list(_FIELDS) + ["created_at", "updated_at"]
        cursor = self._execute(
            f"INSERT INTO {self._table} ({', '.join(names)}) VALUES ({_placeholders(names)})",
            values,
        )
        article.id = cursor.lastrowid
        return article

    def update(self, article: Article) -> Article:
        """Save every field except the creation time."""
        article.updated_at = datetime.now()
        names = [name for name in _FIELDS if name != "id"]
        assignments = ", ".join(f"{name} = ?" for name in names)
        self._execute(
            f"UPDATE {self._table} SET {assignments}, updated_at = ? WHERE id = ?",
            [getattr(article, name) for name in names] + [article.updated_at, article.id],
        )
        return article

    def delete(self, article_id: int) -> None:
        self._execute(f"DELETE FROM {self._table} WHERE id = ?", (article_id,))

    def get_by_id(self, article_id: int) -> Article:
        row = self._execute(
            f"SELECT {_columns()} FROM {self._table} AS a WHERE a.id = ? LIMIT 1", (article_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("文章不存在")
        return Article(**dict(row))

    def get_list(
        self, params: ArticleQueryParams, current_user_id: int = 0
    ) -> ArticlePaginationResult:
        """Search articles with the filters, ordering and paging of ``params``.

        The author "current" stands for ``current_user_id``.
        """
        page, page_size = _paging(params.page, params.page_size)
        params.page, params.page_size = page, page_size

        joins: list[str] = []
        where: list[str] = []
        args: list[Any] = []
        group = ""
        group_args: list[Any] = []

        if params.tag_ids:
            links = self._db.table(ArticleTag.table)
            marks = _placeholders(params.tag_ids)
            joins.append(f"JOIN {links} AS t ON a.id = t.article_id")
            where.append(f"t.tag_id IN ({marks})")
            args.extend(params.tag_ids)
            if len(params.tag_ids) > 1:
                group = (
                    " GROUP BY a.id HAVING COUNT(DISTINCT CASE WHEN t.tag_id IN "
                    f"({marks}) THEN t.tag_id ELSE NULL END) = ?"
                )
                group_args = [*params.tag_ids, len(params.tag_ids)]
        if params.author:
            if params.author == "current":
                where.append("a.author_id = ?")
                args.append(current_user_id)
            else:
                joins.append(f"JOIN {self._db.table('user')} AS u ON a.author_id = u.id")
                where.append("u.username = ?")
                args.append(params.author)
        if params.category_ids:
            where.append(f"a.category_id IN ({_placeholders(params.category_ids)})")
            args.extend(params.category_ids)
        if params.status:
            where.append("a.status = ?")
            args.append(params.status)
        if params.keyword:
            pattern = f"%{params.keyword}%"
            where.append("(a.title LIKE ? OR a.summary LIKE ?)")
            args.extend([pattern, pattern])
        start = time_range_start(params.time_range)
        if start is not None:
            where.append("a.created_at >= ?")
            args.append(start)

        where_clause = f" WHERE {' AND '.join(where)}" if where else ""
        body = f"FROM {self._table} AS a {' '.join(joins)}{where_clause}{group}"
        body_args = args + group_args

        total = self._execute(
            f"SELECT COUNT(*) FROM (SELECT a.id {body})", body_args
        ).fetchone()[0]

        orders = [_SORT_COLUMNS[params.sort_by]] if params.sort_by in _SORT_COLUMNS else []
        orders.append("a.created_at DESC")
        items = self._fetch_items(
            f"SELECT {_columns()} {body} ORDER BY {', '.join(orders)} LIMIT ? OFFSET ?",
            body_args + [page_size, (page - 1) * page_size],
        )
        return ArticlePaginationResult(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )

    def _increment(self, column: str, article_id: int, value: int) -> None:
        if column not in _COUNTERS:
            raise ValueError(f"unknown counter: {column}")
        self._execute(
            f"UPDATE {self._table} SET {column} = {column} + ? WHERE id = ?", (value, article_id)
        )

    def increment_view_count(self, article_id: int) -> None:
        self._increment("view_count", article_id, 1)

    def increment_like_count(self, article_id: int, value: int) -> None:
        self._increment("like_count", article_id, value)

    def increment_favorite_count(self, article_id: int, value: int) -> None:
        self._increment("favorite_count", article_id, value)

    def increment_comment_count(self, article_id: int, value: int) -> None:
        self._increment("comment_count", article_id, value)

    def get_article_tags(self, article_id: int) -> list[Tag]:
        """The tags attached to an article."""
        tags = self._db.table(Tag.table)
        links = self._db.table(ArticleTag.table)
        rows = self._execute(
            f'SELECT t.id AS id, t.name AS name, t.created_at AS "created_at [INKTIME]", '
            f't.updated_at AS "updated_at [INKTIME]" FROM {tags} AS t '
            f"JOIN {links} AS l ON t.id = l.tag_id WHERE l.article_id = ? ORDER BY t.id",
            (article_id,),
        ).fetchall()
        return [Tag(**dict(row)) for row in rows]

    def _interaction_page(
        self, user_id: int, kind: str, page: int, page_size: int
    ) -> ArticlePaginationResult:
        page, page_size = _paging(page, page_size)
        interactions = self._db.table(UserInteraction.table)
        body = (
            f"FROM {self._table} AS a JOIN {interactions} AS u ON a.id = u.article_id "
            "WHERE u.user_id = ? AND u.type = ?"
        )
        total = self._execute(f"SELECT COUNT(*) {body}", (user_id, kind)).fetchone()[0]
        items = self._fetch_items(
            f"SELECT {_columns()} {body} ORDER BY u.created_at DESC LIMIT ? OFFSET ?",
            (user_id, kind, page_size, (page - 1) * page_size),
        )
        return ArticlePaginationResult(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )

    def get_user_liked_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        """Articles a user liked, most recent like first."""
        return self._interaction_page(user_id, "like", page, page_size)

    def get_user_favorite_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        """Articles a user favourited, most recent first."""
        return self._interaction_page(user_id, "favorite", page, page_size)

    def get_user_commented_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        """Articles a user commented on, ordered by the user's latest comment."""
        page, page_size = _paging(page, page_size)
        comments = self._db.table("comment")
        body = (
            f"FROM {self._table} AS a JOIN (SELECT article_id, MAX(created_at) AS "
            f"latest_comment_time FROM {comments} WHERE author_id = ? GROUP BY article_id) "
            "AS latest_comments ON a.id = latest_comments.article_id"
        )
        total = self._execute(f"SELECT COUNT(*) {body}", (user_id,)).fetchone()[0]
        items = self._fetch_items(
            f"SELECT {_columns()} {body} ORDER BY latest_comments.latest_comment_time DESC "
            "LIMIT ? OFFSET ?",
            (user_id, page_size, (page - 1) * page_size),
        )
        return ArticlePaginationResult(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )

    def get_hot_articles(self, limit: int) -> list[ArticleListItem]:
        """The most viewed published articles; the limit defaults to 5."""
        return self._fetch_items(
            f"SELECT {_columns()} FROM {self._table} AS a WHERE a.status = 'published' "
            "ORDER BY a.view_count DESC LIMIT ?",
            (limit if limit > 0 else 5,),
        )

    def get_latest_articles(self, limit: int) -> list[ArticleListItem]:
        """The newest published articles; the limit defaults to 5."""
        return self._fetch_items(
            f"SELECT {_columns()} FROM {self._table} AS a WHERE a.status = 'published' "
            "ORDER BY a.created_at DESC LIMIT ?",
            (limit if limit > 0 else 5,),
        )