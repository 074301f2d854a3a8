"""Storage of likes, favourites and views of articles."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Sequence

from inkblog.blog_schema import (
    Article,
    ArticleListItem,
    ArticlePaginationResult,
    InteractionResponse,
    UserInteraction,
    total_pages,
)
from inkblog.store import Database, NotFoundError

_MATCH = "user_id = ? AND article_id = ? AND type = ?"

_ITEM_FIELDS = (
    "id",
    "title",
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


class InteractionRepository:
    """Reads and writes user interactions with articles."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def _table(self) -> str:
        return self._db.table(UserInteraction.table)

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._db.connection.execute(sql, params)

    def _count(self, user_id: int, article_id: int, interaction_type: str) -> int:
        return self._execute(
            f"SELECT COUNT(*) FROM {self._table} WHERE {_MATCH}",
            (user_id, article_id, interaction_type),
        ).fetchone()[0]

    def create_or_update(self, interaction: UserInteraction) -> UserInteraction:
        """Store an interaction, or refresh its time if it exists already."""
        if interaction.created_at is None:
            interaction.created_at = datetime.now()
        key = (interaction.user_id, interaction.article_id, interaction.type)
        if self._count(*key) == 0:
            cursor = self._execute(
                f"INSERT INTO {self._table} (user_id, article_id, type, created_at) "
                "VALUES (?, ?, ?, ?)",
                (*key, interaction.created_at),
            )
            interaction.id = cursor.lastrowid
        else:
            self._execute(
                f"UPDATE {self._table} SET created_at = ? WHERE {_MATCH}",
                (interaction.created_at, *key),
            )
        return interaction

    def delete(self, user_id: int, article_id: int, interaction_type: str) -> None:
        self._execute(
            f"DELETE FROM {self._table} WHERE {_MATCH}", (user_id, article_id, interaction_type)
        )

    def get(self, user_id: int, article_id: int, interaction_type: str) -> UserInteraction:
        row = self._execute(
            f'SELECT id, user_id, article_id, type, created_at AS "created_at [INKTIME]" '
            f"FROM {self._table} WHERE {_MATCH} LIMIT 1",
            (user_id, article_id, interaction_type),
        ).fetchone()
        if row is None:
            raise NotFoundError(
                f"用户 {user_id} 与文章 {article_id} 的 {interaction_type} 交互不存在"
            )
        return UserInteraction(**dict(row))

    def get_user_interactions(self, user_id: int, article_id: int) -> InteractionResponse:
        """Whether the user liked and favourited the article."""
        return InteractionResponse(
            liked=self._count(user_id, article_id, "like") > 0,
            favorited=self._count(user_id, article_id, "favorite") > 0,
        )

    def record_view(self, user_id: int, article_id: int) -> UserInteraction:
        """Remember that the user has just viewed the article."""
        return self.create_or_update(
            UserInteraction(
                user_id=user_id, article_id=article_id, type="view", created_at=datetime.now()
            )
        )

    def get_user_view_history(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        """Articles the user viewed, most recently viewed first."""
        page = page if page > 0 else 1
        page_size = page_size if page_size > 0 else 10
        articles = self._db.table(Article.table)
        body = (
            f"FROM {articles} AS a JOIN {self._table} AS u ON a.id = u.article_id "
            "WHERE u.user_id = ? AND u.type = 'view'"
        )
        total = self._execute(f"SELECT COUNT(*) {body}", (user_id,)).fetchone()[0]
        columns = ", ".join(f"a.{name} AS {name}" for name in _ITEM_FIELDS)
        rows = self._execute(
            f'SELECT {columns}, a.created_at AS "created_at [INKTIME]", '
            f'u.created_at AS "interaction_time [INKTIME]" {body} '
            "ORDER BY u.created_at DESC LIMIT ? OFFSET ?",
            (user_id, page_size, (page - 1) * page_size),
        ).fetchall()
        return ArticlePaginationResult(
            items=[ArticleListItem(**dict(row)) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )