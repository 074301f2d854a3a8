"""Models, requests and results of articles, categories, tags and interactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Iterable, Optional

from inkblog.store import BadRequestError

_ARTICLE_STATUSES = ("published", "draft")
_ARTICLE_SORTS = ("newest", "views", "likes", "favorites", "comments")
_TIME_RANGES = ("today", "week", "month", "year", "all")
_SORT_ORDERS = ("desc", "asc")


def _require(value: str, name: str) -> None:
    if not value:
        raise BadRequestError(f"{name} is required")


def _one_of(value: str, choices: Iterable[str], name: str) -> None:
    choices = tuple(choices)
    if value and value not in choices:
        raise BadRequestError(f"{name} must be one of: {', '.join(choices)}")


def _check_paging(page: int, page_size: int, max_size: int) -> None:
    if page and page < 1:
        raise BadRequestError("page must be at least 1")
    if page_size and not 1 <= page_size <= max_size:
        raise BadRequestError(f"page_size must be between 1 and {max_size}")


def total_pages(total: int, page_size: int) -> int:
    """Number of pages needed for ``total`` items; a partial page counts as one."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return (total + page_size - 1) // page_size


@dataclass
class InteractionResponse:
    """Whether a user has liked and favourited an article."""

    liked: bool = False
    favorited: bool = False


@dataclass
class Article:
    """A stored article."""

    table: ClassVar[str] = "article"

    id: Optional[int] = None
    title: str = ""
    content: str = ""
    summary: str = ""
    author_id: int = 0
    category_id: Optional[int] = None
    cover: str = ""
    status: str = "draft"
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    favorite_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ArticleResponse:
    """Full article as returned to clients."""

    id: int
    title: str = ""
    content: str = ""
    summary: str = ""
    author_id: int = 0
    author: str = ""
    author_avatar: str = ""
    category_id: Optional[int] = None
    category_name: str = ""
    cover: str = ""
    status: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    favorite_count: int = 0
    tags: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    interactions: Optional[InteractionResponse] = None


@dataclass
class ArticleListItem:
    """Article summary shown in lists."""

    id: int
    title: str = ""
    summary: str = ""
    author_id: int = 0
    author: str = ""
    author_avatar: str = ""
    category_id: Optional[int] = None
    category_name: str = ""
    cover: str = ""
    status: str = ""
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    favorite_count: int = 0
    tags: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None
    interaction_time: Optional[datetime] = None


@dataclass
class CreateArticleRequest:
    """Data for a new article."""

    title: str
    content: str
    status: str
    summary: str = ""
    category_id: Optional[int] = None
    tag_ids: list[int] = field(default_factory=list)
    cover: str = ""

    def __post_init__(self) -> None:
        _require(self.title, "title")
        _require(self.content, "content")
        _require(self.status, "status")
        _one_of(self.status, _ARTICLE_STATUSES, "status")


@dataclass
class UpdateArticleRequest:
    """Changes to an article; empty fields are left untouched."""

    title: str = ""
    content: str = ""
    summary: str = ""
    category_id: Optional[int] = None
    tag_ids: list[int] = field(default_factory=list)
    cover: str = ""
    status: str = ""

    def __post_init__(self) -> None:
        _one_of(self.status, _ARTICLE_STATUSES, "status")


@dataclass
class ArticleQueryParams:
    """Filters, ordering and paging of an article search."""

    page: int = 0
    page_size: int = 0
    category_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)
    author: str = ""
    status: str = ""
    sort_by: str = ""
    keyword: str = ""
    time_range: str = ""

    def __post_init__(self) -> None:
        _check_paging(self.page, self.page_size, 100)
        if any(i < 1 for i in self.category_ids):
            raise BadRequestError("category_ids must be at least 1")
        if any(i < 1 for i in self.tag_ids):
            raise BadRequestError("tag_ids must be at least 1")
        _one_of(self.status, _ARTICLE_STATUSES, "status")
        _one_of(self.sort_by, _ARTICLE_SORTS, "sort_by")
        _one_of(self.time_range, _TIME_RANGES, "time_range")


@dataclass
class ArticlePaginationResult:
    """One page of article list items."""

    items: list[ArticleListItem] = field(default_factory=list)
    total: int = 0
    page: int = 0
    page_size: int = 0
    total_pages: int = 0


@dataclass
class CoverResponse:
    """Location of an uploaded cover image."""

    url: str


@dataclass
class ArticleInteractionResponse:
    """State of a like or favourite after toggling it."""

    interacted: bool


@dataclass
class ArticleTag:
    """Link between an article and a tag."""

    table: ClassVar[str] = "article_tag"

    article_id: int
    tag_id: int
    created_at: Optional[datetime] = None


@dataclass
class Category:
    """A stored category."""

    table: ClassVar[str] = "category"

    id: Optional[int] = None
    name: str = ""
    description: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CategoryResponse:
    """Category with the number of its published articles."""

    id: int
    name: str = ""
    description: str = ""
    article_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CreateCategoryRequest:
    """Data for a new category."""

    name: str
    description: str = ""

    def __post_init__(self) -> None:
        _require(self.name, "name")


@dataclass
class UpdateCategoryRequest:
    """Changes to a category; empty fields are left untouched."""

    name: str = ""
    description: str = ""


@dataclass
class CategoryQueryParams:
    """Ordering and paging of the category list."""

    page: int = 0
    page_size: int = 0
    sort_by_id: str = ""
    sort_by_article_count: str = ""
    sort_by_create: str = ""
    sort_by_update: str = ""

    def __post_init__(self) -> None:
        _check_paging(self.page, self.page_size, 100)
        _one_of(self.sort_by_id, _SORT_ORDERS, "sort_by_id")
        _one_of(self.sort_by_article_count, _SORT_ORDERS, "sort_by_article_count")
        _one_of(self.sort_by_create, _SORT_ORDERS, "sort_by_create")
        _one_of(self.sort_by_update, _SORT_ORDERS, "sort_by_update")


@dataclass
class CategoryPaginationResult:
    """One page of categories with overall statistics."""

    items: list[CategoryResponse] = field(default_factory=list)
    total_categories: int = 0
    total_articles: int = 0
    categories_with_article: int = 0
    category_name_with_most_article: str = ""
    most_article_counts: int = 0
    page: int = 0
    page_size: int = 0
    total_pages: int = 0


@dataclass
class UserInteraction:
    """A user's like, favourite or view of an article."""

    table: ClassVar[str] = "user_interaction"

    id: Optional[int] = None
    user_id: int = 0
    article_id: int = 0
    type: str = ""
    created_at: Optional[datetime] = None


@dataclass
class Tag:
    """A stored tag."""

    table: ClassVar[str] = "tag"

    id: Optional[int] = None
    name: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TagResponse:
    """Tag with the number of articles carrying it."""

    id: int
    name: str = ""
    article_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class CreateTagRequest:
    """Data for a new tag."""

    name: str

    def __post_init__(self) -> None:
        _require(self.name, "name")


@dataclass
class UpdateTagRequest:
    """New name for a tag."""

    name: str

    def __post_init__(self) -> None:
        _require(self.name, "name")


@dataclass
class TagQueryParams:
    """Ordering and paging of the tag list."""

    page: int = 0
    page_size: int = 0
    sort_by_id: str = ""
    sort_by_article_count: str = ""
    sort_by_create: str = ""
    sort_by_update: str = ""

    def __post_init__(self) -> None:
        _check_paging(self.page, self.page_size, 100)
        _one_of(self.sort_by_id, _SORT_ORDERS, "sort_by_id")
        _one_of(self.sort_by_article_count, _SORT_ORDERS, "sort_by_article_count")
        _one_of(self.sort_by_create, _SORT_ORDERS, "sort_by_create")
        _one_of(self.sort_by_update, _SORT_ORDERS, "sort_by_update")


@dataclass
class TagPaginationResult:
    """One page of tags with overall statistics."""

    items: list[TagResponse] = field(default_factory=list)
    total_tags: int = 0
    total_articles: int = 0
    tags_with_article: int = 0
    tag_name_with_most_article: str = ""
    most_article_counts: int = 0
    page: int = 0
    page_size: int = 0
    total_pages: int = 0