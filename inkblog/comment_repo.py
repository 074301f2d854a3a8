"""Storage of comments and the lists and details built from them."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional, Sequence

from inkblog.blog_schema import Article
from inkblog.comment_schema import (
    ArticleCommentsRequest,
    Comment,
    CommentPaginationResult,
    CommentRepliesRequest,
    CommentResponse,
    CommentReviewListRequest,
    CommentStatus,
    ReviewCommentRequest,
    UserCommentsRequest,
)
from inkblog.blog_schema import total_pages
from inkblog.store import AppError, Database, NotFoundError, UserDirectory

_log = logging.getLogger(__name__)

_COLUMNS = (
    "id, content, author_id, article_id, parent_id, root_id, level, status, "
    'reviewed_at AS "reviewed_at [INKTIME]", reviewer_id, review_remark, '
    'created_at AS "created_at [INKTIME]"'
)


def _paging(page: int, page_size: int) -> tuple[int, int]:
    return (page if page > 0 else 1, page_size if page_size > 0 else 10)


def _response(comment: Comment, with_review: bool) -> CommentResponse:
    response = CommentResponse(
        id=comment.id,
        content=comment.content,
        author_id=comment.author_id,
        article_id=comment.article_id,
        parent_id=comment.parent_id,
        root_id=comment.root_id,
        level=comment.level,
        status=comment.status,
        created_at=comment.created_at,
    )
    if with_review:
        response.reviewed_at = comment.reviewed_at
        response.reviewer_id = comment.reviewer_id
        response.review_remark = comment.review_remark
    return response


class CommentRepository:
    """Reads and writes comments."""

    def __init__(self, db: Database, users: UserDirectory) -> None:
        self._db = db
        self._users = users

    @property
    def _table(self) -> str:
        return self._db.table(Comment.table)

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self._db.connection.execute(sql, params)

    def _select(self, where: list[str], args: list[Any], order: str, page: int, page_size: int):
        where_clause = f" WHERE {' AND '.join(where)}" if where else ""
        total = self._execute(
            f"SELECT COUNT(*) FROM {self._table}{where_clause}", args
        ).fetchone()[0]
        rows = self._execute(
            f"SELECT {_COLUMNS} FROM {self._table}{where_clause} ORDER BY {order} "
            "LIMIT ? OFFSET ?",
            [*args, page_size, (page - 1) * page_size],
        ).fetchall()
        return total, [Comment(**dict(row)) for row in rows]

    @staticmethod
    def _result(
        items: list[CommentResponse], total: int, page: int, page_size: int
    ) -> CommentPaginationResult:
        return CommentPaginationResult(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages(total, page_size),
        )

    def create(self, comment: Comment) -> Comment:
        """Store a new comment and fill in its id and creation time."""
        if comment.created_at is None:
            comment.created_at = datetime.now()
        cursor = self._execute(
            f"INSERT INTO {self._table} (id, content, author_id, article_id, parent_id, "
            "root_id, level, status, reviewed_at, reviewer_id, review_remark, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                comment.id,
                comment.content,
                comment.author_id,
                comment.article_id,
                comment.parent_id,
                comment.root_id,
                comment.level,
                int(comment.status),
                comment.reviewed_at,
                comment.reviewer_id,
                comment.review_remark,
                comment.created_at,
            ),
        )
        comment.id = cursor.lastrowid
        return comment

    def delete_by_id(self, comment_id: int) -> None:
        self._execute(f"DELETE FROM {self._table} WHERE id = ?", (comment_id,))

    def delete_by_parent_id(self, parent_id: int) -> int:
        """Delete every reply below a comment; return how many were approved."""
        rows = self._execute(
            f"SELECT id, status FROM {self._table} WHERE parent_id = ?", (parent_id,)
        ).fetchall()
        if not rows:
            return 0
        count = 0
        for row in rows:
            count += self.delete_by_parent_id(row["id"])
            if row["status"] == CommentStatus.APPROVED:
                count += 1
        self._execute(f"DELETE FROM {self._table} WHERE parent_id = ?", (parent_id,))
        return count

    def get_by_id(self, comment_id: int) -> Comment:
        row = self._execute(
            f"SELECT {_COLUMNS} FROM {self._table} WHERE id = ? LIMIT 1", (comment_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError("评论不存在")
        return Comment(**dict(row))

    def get_article_comments(
        self, article_id: int, req: ArticleCommentsRequest
    ) -> CommentPaginationResult:
        """Top-level comments of an article; pending ones only when asked."""
        page, page_size = _paging(req.page, req.page_size)
        where = ["article_id = ?", "level = 1"]
        args: list[Any] = [article_id]
        if not req.include_pending:
            where.append("status = ?")
            args.append(int(CommentStatus.APPROVED))
        order = "created_at ASC, id ASC" if req.sort_by_create == "asc" else "created_at DESC, id DESC"
        total, comments = self._select(where, args, order, page, page_size)

        items = []
        for comment in comments:
            item = _response(comment, with_review=False)
            self.fill_author_info(item)
            item.reply_count = self.count_replies(comment.id)
            items.append(item)
        return self._result(items, total, page, page_size)

    def count_replies(self, comment_id: int) -> int:
        """Number of approved replies below a comment, at any depth."""
        return self._execute(
            f"SELECT COUNT(*) FROM {self._table} WHERE (parent_id = ? OR root_id = ?) "
            "AND status = ? AND id != ?",
            (comment_id, comment_id, int(CommentStatus.APPROVED), comment_id),
        ).fetchone()[0]

    def get_comment_replies(
        self, comment_id: int, req: CommentRepliesRequest
    ) -> CommentPaginationResult:
        """Replies to a comment as a flat list.

        Without ``include_replies`` only direct replies are returned; with it,
        every reply in the thread, limited to ``max_depth`` levels when positive.
        """
        page, page_size = _paging(req.page, req.page_size)
        where: list[str] = []
        args: list[Any] = []
        if req.include_replies:
            where.append("(parent_id = ? OR root_id = ?) AND id != ?")
            args.extend([comment_id, comment_id, comment_id])
            if req.max_depth > 0:
                current = self.get_by_id(comment_id)
                where.append("level <= ?")
                args.append(current.level + req.max_depth)
        else:
            where.append("parent_id = ?")
            args.append(comment_id)
        if not req.include_pending:
            where.append("status = ?")
            args.append(int(CommentStatus.APPROVED))
        order = "created_at DESC, id DESC" if req.sort_by_create == "desc" else "created_at ASC, id ASC"
        total, comments = self._select(where, args, order, page, page_size)

        items = []
        for comment in comments:
            item = _response(comment, with_review=False)
            self.fill_author_info(item)
            self.fill_parent_comment_info(item)
            item.reply_count = self.count_replies(comment.id)
            items.append(item)
        return self._result(items, total, page, page_size)

    def get_user_comments(self, user_id: int, req: UserCommentsRequest) -> CommentPaginationResult:
        """Every comment a user wrote, whatever its review state, newest first."""
        req.page, req.page_size = _paging(req.page, req.page_size)
        total, comments = self._select(
            ["author_id = ?"], [user_id], "created_at DESC, id DESC", req.page, req.page_size
        )
        items = []
        for comment in comments:
            item = _response(comment, with_review=True)
            self.fill_article_info(item)
            self.fill_parent_comment_info(item)
            self.fill_reviewer_info(item)
            item.reply_count = self.count_replies(comment.id)
            items.append(item)
        return self._result(items, total, req.page, req.page_size)

    def get_comments_for_review(self, req: CommentReviewListRequest) -> CommentPaginationResult:
        """Comments matching the review filters, ordered as asked."""
        req.page, req.page_size = _paging(req.page, req.page_size)
        where: list[str] = []
        args: list[Any] = []
        for column, value in (
            ("status", req.status),
            ("article_id", req.article_id),
            ("author_id", req.author_id),
            ("parent_id", req.parent_id),
            ("root_id", req.root_id),
            ("level", req.level),
        ):
            if value is not None:
                where.append(f"{column} = ?")
                args.append(int(value))
        if req.keyword:
            where.append("content LIKE ?")
            args.append(f"%{req.keyword}%")
        for condition, value in (
            ("created_at >= ?", req.create_start_time),
            ("created_at <= ?", req.create_end_time),
            ("reviewed_at >= ?", req.review_start_time),
            ("reviewed_at <= ?", req.review_end_time),
            ("reviewer_id = ?", req.reviewer_id),
        ):
            if value is not None:
                where.append(condition)
                args.append(value)

        column = "reviewed_at" if req.sort_by == "review" else "created_at"
        direction = "ASC" if req.sort_order == "asc" else "DESC"
        order = f"{column} {direction}, id {direction}"
        total, comments = self._select(where, args, order, req.page, req.page_size)

        items = []
        for comment in comments:
            item = _response(comment, with_review=True)
            self.fill_author_info(item)
            self.fill_article_info(item)
            self.fill_parent_comment_info(item)
            self.fill_reviewer_info(item)
            item.reply_count = self.count_replies(comment.id)
            items.append(item)
        return self._result(items, total, req.page, req.page_size)

    def update_comment_status(
        self,
        reviewer_id: int,
        req: ReviewCommentRequest,
        reviewed_at: Optional[datetime],
    ) -> None:
        """Record a reviewer's decision on a comment."""
        self._execute(
            f"UPDATE {self._table} SET status = ?, reviewer_id = ?, review_remark = ?, "
            "reviewed_at = ? WHERE id = ?",
            (int(req.status), reviewer_id, req.review_remark, reviewed_at, req.comment_id),
        )

    def fill_author_info(self, response: CommentResponse) -> None:
        """Set the author's name and avatar; log and leave them blank on failure."""
        try:
            user = self._users.get(response.author_id)
        except AppError:
            _log.error(
                "获取评论作者信息失败 comment_id=%s author_id=%s", response.id, response.author_id
            )
            return
        response.author = user.username
        response.avatar = user.avatar

    def fill_reviewer_info(self, response: CommentResponse) -> None:
        """Set the reviewer's name and avatar when the comment has a reviewer."""
        if response.reviewer_id is None:
            return
        try:
            user = self._users.get(response.reviewer_id)
        except AppError:
            _log.error(
                "获取审核人员信息失败 comment_id=%s reviewer_id=%s",
                response.id,
                response.reviewer_id,
            )
            return
        response.reviewer_name = user.username
        response.reviewer_avatar = user.avatar

    def fill_article_info(self, response: CommentResponse) -> None:
        """Set the title of the commented article."""
        row = self._execute(
            f"SELECT title FROM {self._db.table(Article.table)} WHERE id = ? LIMIT 1",
            (response.article_id,),
        ).fetchone()
        if row is None:
            _log.error(
                "获取文章标题失败 comment_id=%s article_id=%s", response.id, response.article_id
            )
            return
        response.article_title = row["title"]

    def fill_parent_comment_info(self, response: CommentResponse) -> None:
        """Set the content and author name of the parent comment, if any."""
        if response.parent_id is None:
            return
        row = self._execute(
            f"SELECT content, author_id FROM {self._table} WHERE id = ? LIMIT 1",
            (response.parent_id,),
        ).fetchone()
        if row is None:
            _log.error(
                "获取父评论信息失败 comment_id=%s parent_id=%s", response.id, response.parent_id
            )
            return
        response.parent_content = row["content"]
        try:
            user = self._users.get(row["author_id"])
        except AppError:
            _log.error(
                "获取父评论作者信息失败 comment_id=%s parent_id=%s author_id=%s",
                response.id,
                response.parent_id,
                row["author_id"],
            )
            return
        response.parent_author = user.username