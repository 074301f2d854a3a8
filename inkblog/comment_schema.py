"""Models, requests and results of article comments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import ClassVar, Iterable, Optional

from inkblog.store import BadRequestError


class CommentStatus(IntEnum):
    """Review state of a comment."""

    PENDING = 0
    APPROVED = 1
    REJECTED = 2


def _one_of(value: object, choices: Iterable[object], name: str) -> None:
    choices = tuple(choices)
    if value and value not in choices:
        raise BadRequestError(f"{name} must be one of: {', '.join(map(str, choices))}")


def _check_paging(page: int, page_size: int, max_size: int, required: bool = False) -> None:
    if required and not page:
        raise BadRequestError("page is required")
    if required and not page_size:
        raise BadRequestError("page_size is required")
    if page and page < 1:
        raise BadRequestError("page must be at least 1")
    if page_size and not 1 <= page_size <= max_size:
        raise BadRequestError(f"page_size must be between 1 and {max_size}")


_SORT_ORDERS = ("asc", "desc")


@dataclass
class Comment:
    """A stored comment; level 1 marks a top-level comment."""

    table: ClassVar[str] = "comment"

    id: Optional[int] = None
    content: str = ""
    author_id: int = 0
    article_id: int = 0
    parent_id: Optional[int] = None
    root_id: Optional[int] = None
    level: int = 1
    status: CommentStatus = CommentStatus.PENDING
    reviewed_at: Optional[datetime] = None
    reviewer_id: Optional[int] = None
    review_remark: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.status = CommentStatus(self.status)


@dataclass
class CommentResponse:
    """Comment as returned to clients, with related names filled in."""

    id: int
    content: str = ""
    author_id: int = 0
    author: str = ""
    avatar: str = ""
    article_id: int = 0
    article_title: str = ""
    parent_id: Optional[int] = None
    root_id: Optional[int] = None
    level: int = 1
    parent_content: str = ""
    parent_author: str = ""
    status: CommentStatus = CommentStatus.PENDING
    reviewed_at: Optional[datetime] = None
    reviewer_id: Optional[int] = None
    reviewer_name: str = ""
    reviewer_avatar: str = ""
    review_remark: str = ""
    reply_count: int = 0
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.status = CommentStatus(self.status)


@dataclass
class CreateCommentRequest:
    """Data for a new comment or reply."""

    content: str
    article_id: int
    parent_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.content:
            raise BadRequestError("content is required")
        if not self.article_id:
            raise BadRequestError("article_id is required")


@dataclass
class ReviewCommentRequest:
    """A reviewer's decision on a pending comment."""

    comment_id: int
    status: CommentStatus
    review_remark: str = ""

    def __post_init__(self) -> None:
        if not self.comment_id:
            raise BadRequestError("comment_id is required")
        if self.status not in (CommentStatus.APPROVED, CommentStatus.REJECTED):
            raise BadRequestError("status must be one of: 1, 2")
        self.status = CommentStatus(self.status)


@dataclass
class CommentReviewListRequest:
    """Filters, ordering and paging of the review list."""

    article_id: Optional[int] = None
    author_id: Optional[int] = None
    parent_id: Optional[int] = None
    root_id: Optional[int] = None
    level: Optional[int] = None
    keyword: str = ""
    status: Optional[CommentStatus] = None
    create_start_time: Optional[datetime] = None
    create_end_time: Optional[datetime] = None
    review_start_time: Optional[datetime] = None
    review_end_time: Optional[datetime] = None
    reviewer_id: Optional[int] = None
    sort_by: str = ""
    sort_order: str = ""
    page: int = 0
    page_size: int = 0

    def __post_init__(self) -> None:
        if self.status is not None:
            if self.status not in tuple(CommentStatus):
                raise BadRequestError("status must be one of: 0, 1, 2")
            self.status = CommentStatus(self.status)
        _one_of(self.sort_by, ("create", "review"), "sort_by")
        _one_of(self.sort_order, ("desc", "asc"), "sort_order")
        _check_paging(self.page, self.page_size, 100, required=True)


@dataclass
class CommentPaginationResult:
    """One page of comments."""

    items: list[CommentResponse] = field(default_factory=list)
    total: int = 0
    page: int = 0
    page_size: int = 0
    total_pages: int = 0


@dataclass
class PaginationRequest:
    """Page number and size; zero means the default."""

    page: int = 0
    page_size: int = 0

    def __post_init__(self) -> None:
        _check_paging(self.page, self.page_size, 30)


@dataclass
class ArticleCommentsRequest(PaginationRequest):
    """Query for the top-level comments of an article."""

    include_pending: bool = False
    sort_by_create: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        _one_of(self.sort_by_create, _SORT_ORDERS, "sort_by_create")


@dataclass
class CommentRepliesRequest(PaginationRequest):
    """Query for the replies below a comment; max_depth 0 means no limit."""

    include_replies: bool = False
    max_depth: int = 0
    include_pending: bool = False
    sort_by_create: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.max_depth < 0:
            raise BadRequestError("max_depth must be at least 0")
        _one_of(self.sort_by_create, _SORT_ORDERS, "sort_by_create")


@dataclass
class CommentTreeRequest:
    """Depth limit of a comment tree; 0 means no limit."""

    max_depth: int = 0

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise BadRequestError("max_depth must be at least 0")


@dataclass
class UserCommentsRequest(PaginationRequest):
    """Query for the comments written by a user."""