"""Business rules for comments: posting, deleting, listing and reviewing."""

from __future__ import annotations

from datetime import datetime

from inkblog.article_repo import ArticleRepository
from inkblog.comment_repo import CommentRepository
from inkblog.comment_schema import (
    ArticleCommentsRequest,
    Comment,
    CommentPaginationResult,
    CommentRepliesRequest,
    CommentResponse,
    CommentReviewListRequest,
    CommentStatus,
    CreateCommentRequest,
    ReviewCommentRequest,
    UserCommentsRequest,
)
from inkblog.store import BadRequestError, ConflictError, Database, ForbiddenError, NotFoundError

MAX_COMMENT_LEVEL = 20


def _response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        content=comment.content,
        author_id=comment.author_id,
        article_id=comment.article_id,
        parent_id=comment.parent_id,
        root_id=comment.root_id,
        level=comment.level,
        status=comment.status,
        reviewed_at=comment.reviewed_at,
        reviewer_id=comment.reviewer_id,
        review_remark=comment.review_remark,
        created_at=comment.created_at,
    )


class CommentService:
    """Coordinates comments with the comment counts of articles."""

    def __init__(
        self, db: Database, comments: CommentRepository, articles: ArticleRepository
    ) -> None:
        self._db = db
        self._comments = comments
        self._articles = articles

    def _fill(self, response: CommentResponse) -> None:
        self._comments.fill_author_info(response)
        self._comments.fill_reviewer_info(response)
        self._comments.fill_article_info(response)
        self._comments.fill_parent_comment_info(response)

    def create_comment(
        self, user_id: int, req: CreateCommentRequest, is_admin: bool = False
    ) -> CommentResponse:
        """Post a comment or reply; an administrator's is approved at once."""
        comment = Comment(
            content=req.content, author_id=user_id, article_id=req.article_id, level=1
        )

        if req.parent_id is not None and req.parent_id > 0:
            try:
                parent = self._comments.get_by_id(req.parent_id)
            except NotFoundError:
                raise NotFoundError("父评论不存在") from None
            if parent.article_id != req.article_id:
                raise ConflictError("当前评论与父评论不属于同一文章")
            if parent.status != CommentStatus.APPROVED:
                raise BadRequestError("不能回复未审核通过的评论")

            comment.parent_id = req.parent_id
            if parent.root_id is not None:
                comment.root_id = parent.root_id
                comment.level = parent.level + 1
            else:
                comment.root_id = req.parent_id
                comment.level = 2
            if comment.level > MAX_COMMENT_LEVEL:
                raise BadRequestError("评论层级过深，请直接回复根评论")

        if is_admin:
            comment.status = CommentStatus.APPROVED
            comment.reviewed_at = datetime.now()
            comment.reviewer_id = user_id
            comment.review_remark = "管理员自动通过"
        else:
            comment.status = CommentStatus.PENDING

        with self._db.transaction():
            self._comments.create(comment)
            if comment.status == CommentStatus.APPROVED:
                self._articles.increment_comment_count(comment.article_id, 1)

        response = _response(comment)
        response.reply_count = 0
        self._fill(response)
        return response

    def delete_comment(self, user_id: int, comment_id: int) -> None:
        """Delete a comment of the user with every reply below it."""
        comment = self._comments.get_by_id(comment_id)
        if comment.author_id != user_id:
            raise ForbiddenError("无权限删除此评论")
        with self._db.transaction():
            approved_replies = self._comments.delete_by_parent_id(comment_id)
            self._comments.delete_by_id(comment_id)
            # A comment that was never approved has no replies and is not counted.
            if comment.status == CommentStatus.APPROVED:
                self._articles.increment_comment_count(
                    comment.article_id, -(approved_replies + 1)
                )

    def get_comment(self, comment_id: int) -> CommentResponse:
        """Comment details with related names and its reply count."""
        response = _response(self._comments.get_by_id(comment_id))
        self._fill(response)
        response.reply_count = self._comments.count_replies(comment_id)
        return response

    def get_article_comments(
        self, article_id: int, req: ArticleCommentsRequest, is_admin: bool = False
    ) -> CommentPaginationResult:
        """Top-level comments of an article, newest first by default."""
        if req.page <= 0:
            req.page = 1
        if req.page_size <= 0:
            req.page_size = 10
        if not req.sort_by_create:
            req.sort_by_create = "desc"
        if is_admin:
            req.include_pending = True
        return self._comments.get_article_comments(article_id, req)

    def get_comment_replies(
        self, comment_id: int, req: CommentRepliesRequest, is_admin: bool = False
    ) -> CommentPaginationResult:
        """Replies below a comment as a flat list, oldest first by default."""
        if req.page <= 0:
            req.page = 1
        if req.page_size <= 0:
            req.page_size = 10
        if req.max_depth < 0:
            req.max_depth = 0
        if not req.sort_by_create:
            req.sort_by_create = "asc"
        if is_admin:
            req.include_pending = True
        return self._comments.get_comment_replies(comment_id, req)

    def get_user_comments(self, user_id: int, req: UserCommentsRequest) -> CommentPaginationResult:
        return self._comments.get_user_comments(user_id, req)

    def get_comments_for_review(self, req: CommentReviewListRequest) -> CommentPaginationResult:
        return self._comments.get_comments_for_review(req)

    def review_comment(self, reviewer_id: int, req: ReviewCommentRequest) -> None:
        """Approve or reject a pending comment; approval counts it on the article."""
        comment = self._comments.get_by_id(req.comment_id)
        if comment.status != CommentStatus.PENDING:
            raise BadRequestError("评论已审核，不能重复审核")
        now = datetime.now()
        with self._db.transaction():
            self._comments.update_comment_status(reviewer_id, req, now)
            if req.status == CommentStatus.APPROVED:
                self._articles.increment_comment_count(comment.article_id, 1)