"""Business rules for articles: writing, reading, tagging and interactions."""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import Iterable, Union

from inkblog.article_repo import ArticleRepository
from inkblog.article_tag_repo import ArticleTagRepository
from inkblog.blog_schema import (
    Article,
    ArticleInteractionResponse,
    ArticleListItem,
    ArticlePaginationResult,
    ArticleQueryParams,
    ArticleResponse,
    ArticleTag,
    CoverResponse,
    CreateArticleRequest,
    InteractionResponse,
    UpdateArticleRequest,
    UserInteraction,
)
from inkblog.category_repo import CategoryRepository
from inkblog.interaction_repo import InteractionRepository
from inkblog.store import (
    AppError,
    BadRequestError,
    Database,
    ForbiddenError,
    NotFoundError,
    UserDirectory,
)

_log = logging.getLogger(__name__)

SUPPORTED_IMAGE_FORMATS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")

ArticleItem = Union[ArticleListItem, ArticleResponse]


class ArticleService:
    """Creates, changes, lists and interacts with articles."""

    def __init__(
        self,
        db: Database,
        articles: ArticleRepository,
        categories: CategoryRepository,
        article_tags: ArticleTagRepository,
        interactions: InteractionRepository,
        users: UserDirectory,
    ) -> None:
        self._db = db
        self._articles = articles
        self._categories = categories
        self._article_tags = article_tags
        self._interactions = interactions
        self._users = users

    def _check_category(self, category_id) -> None:
        if category_id is not None and category_id > 0:
            self._categories.get_by_id(category_id)

    def _replace_tags(self, article_id: int, tag_ids: Iterable[int]) -> None:
        """Swap the article's tags; a failure is logged and leaves the old ones."""
        try:
            with self._db.transaction():
                self._article_tags.delete_by_article_id(article_id)
                for tag_id in tag_ids:
                    self._article_tags.create(ArticleTag(article_id=article_id, tag_id=tag_id))
        except (AppError, sqlite3.Error):
            _log.exception("更新文章标签失败 article_id=%s", article_id)

    def create_article(self, user_id: int, req: CreateArticleRequest) -> ArticleResponse:
        """Store a new article written by ``user_id`` and return its details."""
        self._check_category(req.category_id)
        article = Article(
            title=req.title,
            content=req.content,
            summary=req.summary,
            author_id=user_id,
            category_id=req.category_id,
            cover=req.cover,
            status=req.status,
        )
        self._articles.create(article)
        if req.tag_ids:
            self._replace_tags(article.id, req.tag_ids)
        return self.get_article(article.id, user_id)

    def update_article(
        self, user_id: int, article_id: int, req: UpdateArticleRequest
    ) -> ArticleResponse:
        """Change the given fields of an article its author owns."""
        article = self._articles.get_by_id(article_id)
        if article.author_id != user_id:
            raise ForbiddenError("无权限修改此文章")
        self._check_category(req.category_id)

        if req.title:
            article.title = req.title
        if req.content:
            article.content = req.content
        if req.summary:
            article.summary = req.summary
        if req.category_id is not None:
            article.category_id = req.category_id
        if req.cover:
            article.cover = req.cover
        if req.status:
            article.status = req.status

        self._articles.update(article)
        if req.tag_ids:
            self._replace_tags(article.id, req.tag_ids)
        return self.get_article(article.id, user_id)

    def delete_article(self, user_id: int, article_id: int) -> None:
        """Delete an article its author owns, together with its tag links."""
        article = self._articles.get_by_id(article_id)
        if article.author_id != user_id:
            raise ForbiddenError("无权限删除此文章")
        with self._db.transaction():
            self._article_tags.delete_by_article_id(article_id)
            self._articles.delete(article_id)

    def save_cover(self, filename: str, data: bytes, static_dir) -> CoverResponse:
        """Save an uploaded cover image under the static directory."""
        ext = Path(filename).suffix
        if ext.lower() not in SUPPORTED_IMAGE_FORMATS:
            raise BadRequestError(f"支持的文件格式为: {', '.join(SUPPORTED_IMAGE_FORMATS)}")
        new_name = f"{time.time_ns()}{ext}"
        cover_url = f"/pic/covers/{new_name}"
        dst = Path(static_dir) / "pic" / "covers" / new_name
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            dst.write_bytes(data)
        except OSError:
            _log.exception("保存图片文件失败 filePath=%s fileSize=%d", dst, len(data))
            raise
        _log.info("保存封面图片文件成功 filePath=%s fileSize=%d", dst, len(data))
        return CoverResponse(url=cover_url)

    def get_article(self, article_id: int, user_id: int = 0) -> ArticleResponse:
        """Article details with author, tags and, for a signed-in user, interactions."""
        article = self._articles.get_by_id(article_id)
        response = ArticleResponse(
            id=article.id,
            title=article.title,
            content=article.content,
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
            updated_at=article.updated_at,
        )
        self.fill_tags(response)
        self.fill_author(response)
        if user_id > 0:
            try:
                response.interactions = self.get_article_interactions(user_id, article_id)
            except (AppError, sqlite3.Error):
                _log.exception(
                    "获取用户与文章的交互状态失败 article_id=%s user_id=%s", article_id, user_id
                )
        return response

    def view_article(self, user_id: int, article_id: int) -> None:
        """Count a view and, for a signed-in user, remember it in the history."""
        self._articles.increment_view_count(article_id)
        if user_id > 0:
            self._interactions.record_view(user_id, article_id)

    def _enrich(self, items: Iterable[ArticleListItem]) -> None:
        for item in items:
            self.fill_author(item)
            self.fill_tags(item)

    def get_article_list(
        self, params: ArticleQueryParams, user_id: int = 0
    ) -> ArticlePaginationResult:
        """Search articles; the author "current" needs a signed-in user."""
        if params.author == "current" and user_id == 0:
            raise BadRequestError("未登录用户无法获取当前用户的文章列表")
        result = self._articles.get_list(params, user_id)
        self._enrich(result.items)
        return result

    def _toggle(self, user_id: int, article_id: int, kind: str, increment) -> None:
        try:
            self._interactions.get(user_id, article_id, kind)
        except NotFoundError:
            self._interactions.create_or_update(
                UserInteraction(user_id=user_id, article_id=article_id, type=kind)
            )
            increment(article_id, 1)
        else:
            self._interactions.delete(user_id, article_id, kind)
            increment(article_id, -1)

    def like_article(self, user_id: int, article_id: int) -> ArticleInteractionResponse:
        """Like the article, or take the like back; report whether it is liked now."""
        self._toggle(user_id, article_id, "like", self._articles.increment_like_count)
        state = self._interactions.get_user_interactions(user_id, article_id)
        return ArticleInteractionResponse(interacted=state.liked)

    def favorite_article(self, user_id: int, article_id: int) -> ArticleInteractionResponse:
        """Favourite the article, or undo it; report whether it is favourited now."""
        self._toggle(user_id, article_id, "favorite", self._articles.increment_favorite_count)
        state = self._interactions.get_user_interactions(user_id, article_id)
        return ArticleInteractionResponse(interacted=state.favorited)

    def get_user_liked_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        result = self._articles.get_user_liked_articles(user_id, page, page_size)
        self._enrich(result.items)
        return result

    def get_user_favorite_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        result = self._articles.get_user_favorite_articles(user_id, page, page_size)
        self._enrich(result.items)
        return result

    def get_user_view_history(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        result = self._interactions.get_user_view_history(user_id, page, page_size)
        self._enrich(result.items)
        return result

    def get_user_commented_articles(
        self, user_id: int, page: int, page_size: int
    ) -> ArticlePaginationResult:
        result = self._articles.get_user_commented_articles(user_id, page, page_size)
        self._enrich(result.items)
        return result

    def get_hot_articles(self, limit: int) -> list[ArticleListItem]:
        items = self._articles.get_hot_articles(limit)
        self._enrich(items)
        return items

    def get_latest_articles(self, limit: int) -> list[ArticleListItem]:
        items = self._articles.get_latest_articles(limit)
        self._enrich(items)
        return items

    def get_article_interactions(self, user_id: int, article_id: int) -> InteractionResponse:
        return self._interactions.get_user_interactions(user_id, article_id)

    def fill_author(self, item: ArticleItem) -> None:
        """Set the author's name and avatar; failures are logged."""
        if not isinstance(item, (ArticleListItem, ArticleResponse)):
            _log.error("不支持的文章类型 type=%s", type(item).__name__)
            return
        if item.author_id > 0:
            try:
                user = self._users.get(item.author_id)
            except AppError:
                _log.error(
                    "获取文章作者信息失败 article_id=%s author_id=%s", item.id, item.author_id
                )
                return
            item.author = user.username
            item.author_avatar = user.avatar

    def fill_tags(self, item: ArticleItem) -> None:
        """Set the ids of the article's tags, when it has any."""
        if not isinstance(item, (ArticleListItem, ArticleResponse)):
            _log.error("不支持的文章类型 type=%s", type(item).__name__)
            return
        try:
            tags = self._articles.get_article_tags(item.id)
        except sqlite3.Error:
            _log.exception("获取文章对应标签失败 article_id=%s", item.id)
            return
        if tags:
            item.tags = [tag.id for tag in tags]