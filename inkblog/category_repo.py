"""Storage of categories and their article statistics."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Sequence

from inkblog.blog_schema import (
    Article,
    Category,
    CategoryPaginationResult,
    CategoryQueryParams,
    CategoryResponse,
    total_pages,
)
from inkblog.store import ConflictError, Database, NotFoundError

_log = logging.getLogger(__name__)


def _columns(alias: str = "") -> str:
    p = f"{alias}." if alias else ""
    return (
        f"{p}id AS id, {p}name AS name, {p}description AS description, "
        f'{p}created_at AS "created_at [INKTIME]", {p}updated_at AS "updated_at [INKTIME]"'
    )


class CategoryRepository:
    """Reads and writes categories."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def _table(self) -> str:
        return self._db.table(Category.table)

    @property
    def _articles(self) -> str:
        return self._db.table(Article.table)

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._db.connection.execute(sql, params)

    def _scalar_or_zero(self, sql: str, params: Sequence[Any], what: str) -> int:
        try:
            row = self._execute(sql, params).fetchone()
        except sqlite3.Error:
            _log.exception("获取%s失败", what)
            return 0
        return int(row[0]) if row and row[0] is not None else 0

    def create(self, category: Category) -> Category:
        """Store a new category and fill in its id and times."""
        now = datetime.now()
        category.created_at = category.created_at or now
        category.updated_at = category.updated_at or now
        cursor = self._execute(
            f"INSERT INTO {self._table} (id, name, description, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (category.id, category.name, category.description, category.created_at, category.updated_at),
        )
        category.id = cursor.lastrowid
        return category

    def update(self, category: Category) -> Category:
        """Save every field except the creation time."""
        category.updated_at = datetime.now()
        self._execute(
            f"UPDATE {self._table} SET name = ?, description = ?, updated_at = ? WHERE id = ?",
            (category.name, category.description, category.updated_at, category.id),
        )
        return category

    def delete(self, category_id: int) -> None:
        """Delete a category that no article uses."""
        row = self._execute(
            f"SELECT COUNT(*) FROM {self._articles} WHERE category_id = ?", (category_id,)
        ).fetchone()
        if row[0] > 0:
            raise ConflictError("该分类下有文章，无法删除")
        self._execute(f"DELETE FROM {self._table} WHERE id = ?", (category_id,))

    def _get_one(self, where: str, value: Any) -> Category:
        row = self._execute(
            f"SELECT {_columns()} FROM {self._table} WHERE {where} = ? LIMIT 1", (value,)
        ).fetchone()
        if row is None:
            raise NotFoundError("分类不存在")
        return Category(**dict(row))

    def get_by_id(self, category_id: int) -> Category:
        return self._get_one("id", category_id)

    def get_by_name(self, name: str) -> Category:
        return self._get_one("name", name)

    def get_all(self) -> list[CategoryResponse]:
        """Every category with the number of its published articles."""
        rows = self._execute(f"SELECT {_columns()} FROM {self._table}").fetchall()
        return [
            CategoryResponse(**dict(row), article_count=self.article_count(row["id"]))
            for row in rows
        ]

    def get_list(self, params: CategoryQueryParams) -> CategoryPaginationResult:
        """One page of categories, ordered as asked, with overall statistics."""
        page = params.page if params.page > 0 else 1
        page_size = params.page_size if params.page_size > 0 else 10
        table, articles = self._table, self._articles

        total_categories = self._execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        published = "status = 'published' AND category_id IS NOT NULL"
        total_articles = self._scalar_or_zero(
            f"SELECT COUNT(*) FROM {articles} WHERE {published}", (), "有分类的文章总数"
        )
        categories_with_article = self._scalar_or_zero(
            f"SELECT COUNT(DISTINCT category_id) FROM {articles} WHERE {published}",
            (),
            "有文章的分类数量",
        )

        joined = (
            f"FROM {table} c LEFT JOIN {articles} a "
            "ON c.id = a.category_id AND a.status = 'published' GROUP BY c.id"
        )
        most_name, most_count = "", 0
        try:
            row = self._execute(
                f"SELECT c.name, COUNT(a.id) AS article_count {joined} "
                "ORDER BY article_count DESC LIMIT 1"
            ).fetchone()
        except sqlite3.Error:
            _log.exception("获取文章数量最多的分类失败")
        else:
            if row is not None:
                most_name, most_count = row[0], row[1]

        orders = []
        for value, column in (
            (params.sort_by_id, "c.id"),
            (params.sort_by_article_count, "article_count"),
            (params.sort_by_create, "c.created_at"),
            (params.sort_by_update, "c.updated_at"),
        ):
            if value in ("asc", "desc"):
                orders.append(f"{column} {value.upper()}")
        order_clause = f" ORDER BY {', '.join(orders)}" if orders else ""

        rows = self._execute(
            f"SELECT {_columns('c')}, COUNT(a.id) AS article_count {joined}{order_clause} "
            "LIMIT ? OFFSET ?",
            (page_size, (page - 1) * page_size),
        ).fetchall()

        return CategoryPaginationResult(
            items=[CategoryResponse(**dict(row)) for row in rows],
            total_categories=total_categories,
            total_articles=total_articles,
            categories_with_article=categories_with_article,
            category_name_with_most_article=most_name,
            most_article_counts=most_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total_categories, page_size),
        )

    def article_count(self, category_id: int) -> int:
        """Number of published articles in a category; 0 if it cannot be read."""
        return self._scalar_or_zero(
            f"SELECT COUNT(*) FROM {self._articles} WHERE status = 'published' AND category_id = ?",
            (category_id,),
            "分类下的文章数量",
        )