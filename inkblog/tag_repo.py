"""Storage of tags and their article statistics."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Sequence

from inkblog.blog_schema import (
    ArticleTag,
    Tag,
    TagPaginationResult,
    TagQueryParams,
    TagResponse,
    total_pages,
)
from inkblog.store import Database, NotFoundError

_log = logging.getLogger(__name__)


def _columns(alias: str = "") -> str:
    p = f"{alias}." if alias else ""
    return (
        f"{p}id AS id, {p}name AS name, "
        f'{p}created_at AS "created_at [INKTIME]", {p}updated_at AS "updated_at [INKTIME]"'
    )


class TagRepository:
    """Reads and writes tags."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def _table(self) -> str:
        return self._db.table(Tag.table)

    @property
    def _links(self) -> str:
        return self._db.table(ArticleTag.table)

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._db.connection.execute(sql, params)

    def _scalar_or_zero(self, sql: str, params: Sequence[Any], what: str) -> int:
        try:
            row = self._execute(sql, params).fetchone()
        except sqlite3.Error:
            _log.exception("获取%s失败", what)
            return 0
        return int(row[0]) if row and row[0] is not None else 0

    def create(self, tag: Tag) -> Tag:
        """Store a new tag and fill in its id and times."""
        now = datetime.now()
        tag.created_at = tag.created_at or now
        tag.updated_at = tag.updated_at or now
        cursor = self._execute(
            f"INSERT INTO {self._table} (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (tag.id, tag.name, tag.created_at, tag.updated_at),
        )
        tag.id = cursor.lastrowid
        return tag

    def update(self, tag: Tag) -> Tag:
        """Save every field except the creation time."""
        tag.updated_at = datetime.now()
        self._execute(
            f"UPDATE {self._table} SET name = ?, updated_at = ? WHERE id = ?",
            (tag.name, tag.updated_at, tag.id),
        )
        return tag

    def delete(self, tag_id: int) -> None:
        self._execute(f"DELETE FROM {self._table} WHERE id = ?", (tag_id,))

    def _get_one(self, column: str, value: Any) -> Tag:
        row = self._execute(
            f"SELECT {_columns()} FROM {self._table} WHERE {column} = ? LIMIT 1", (value,)
        ).fetchone()
        if row is None:
            raise NotFoundError("标签不存在")
        return Tag(**dict(row))

    def get_by_id(self, tag_id: int) -> Tag:
        return self._get_one("id", tag_id)

    def get_by_name(self, name: str) -> Tag:
        return self._get_one("name", name)

    def get_all(self) -> list[TagResponse]:
        """Every tag with the number of articles carrying it."""
        rows = self._execute(f"SELECT {_columns()} FROM {self._table}").fetchall()
        return [
            TagResponse(**dict(row), article_count=self.article_count(row["id"])) for row in rows
        ]

    def get_list(self, params: TagQueryParams) -> TagPaginationResult:
        """One page of tags, ordered as asked, with overall statistics."""
        page = params.page if params.page > 0 else 1
        page_size = params.page_size if params.page_size > 0 else 10
        params.page, params.page_size = page, page_size
        table, links = self._table, self._links

        total_tags = self._execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        total_articles = self._scalar_or_zero(
            f"SELECT COUNT(DISTINCT article_id) FROM {links}", (), "有标签的文章总数"
        )
        tags_with_article = self._scalar_or_zero(
            f"SELECT COUNT(DISTINCT tag_id) FROM {links}", (), "有文章的标签数量"
        )

        joined = f"FROM {table} t LEFT JOIN {links} l ON t.id = l.tag_id GROUP BY t.id"
        most_name, most_count = "", 0
        try:
            row = self._execute(
                f"SELECT t.name, COUNT(l.article_id) AS article_count {joined} "
                "ORDER BY article_count DESC LIMIT 1"
            ).fetchone()
        except sqlite3.Error:
            _log.exception("获取文章数量最多的标签失败")
        else:
            if row is not None:
                most_name, most_count = row[0], row[1]

        orders = []
        for value, column in (
            (params.sort_by_id, "t.id"),
            (params.sort_by_article_count, "article_count"),
            (params.sort_by_create, "t.created_at"),
            (params.sort_by_update, "t.updated_at"),
        ):
            if value in ("asc", "desc"):
                orders.append(f"{column} {value.upper()}")
        order_clause = f" ORDER BY {', '.join(orders)}" if orders else ""

        rows = self._execute(
            f"SELECT {_columns('t')}, COUNT(l.article_id) AS article_count {joined}{order_clause} "
            "LIMIT ? OFFSET ?",
            (page_size, (page - 1) * page_size),
        ).fetchall()

        return TagPaginationResult(
            items=[TagResponse(**dict(row)) for row in rows],
            total_tags=total_tags,
            total_articles=total_articles,
            tags_with_article=tags_with_article,
            tag_name_with_most_article=most_name,
            most_article_counts=most_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total_tags, page_size),
        )

    def get_hot_tags(self, limit: int) -> list[TagResponse]:
        """Tags carried by articles, most used first; the limit defaults to 10."""
        rows = self._execute(
            f"SELECT {_columns('t')}, COUNT(l.article_id) AS article_count "
            f"FROM {self._table} t JOIN {self._links} l ON t.id = l.tag_id "
            "GROUP BY t.id ORDER BY article_count DESC, t.id ASC LIMIT ?",
            (limit if limit > 0 else 10,),
        ).fetchall()
        return [TagResponse(**dict(row)) for row in rows]

    def article_count(self, tag_id: int) -> int:
        """Number of articles carrying a tag; 0 if it cannot be read."""
        return self._scalar_or_zero(
            f"SELECT COUNT(*) FROM {self._links} WHERE tag_id = ?", (tag_id,), "标签下的文章数量"
        )