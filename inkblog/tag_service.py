"""Business rules for tags."""

from __future__ import annotations

from inkblog.article_tag_repo import ArticleTagRepository
from inkblog.blog_schema import (
    CreateTagRequest,
    Tag,
    TagPaginationResult,
    TagQueryParams,
    TagResponse,
    UpdateTagRequest,
)
from inkblog.store import ConflictError, Database, NotFoundError
from inkblog.tag_repo import TagRepository


class TagService:
    """Creates, renames, removes and lists tags."""

    def __init__(
        self, db: Database, tags: TagRepository, article_tags: ArticleTagRepository
    ) -> None:
        self._db = db
        self._tags = tags
        self._article_tags = article_tags

    def _response(self, tag: Tag) -> TagResponse:
        return TagResponse(
            id=tag.id,
            name=tag.name,
            article_count=self._tags.article_count(tag.id),
            created_at=tag.created_at,
            updated_at=tag.updated_at,
        )

    def create_tag(self, req: CreateTagRequest) -> TagResponse:
        """Create a tag, or return the existing one of the same name."""
        try:
            existing = self._tags.get_by_name(req.name)
        except NotFoundError:
            tag = self._tags.create(Tag(name=req.name))
            return self._response(tag)
        return self._response(existing)

    def update_tag(self, tag_id: int, req: UpdateTagRequest) -> TagResponse:
        """Rename a tag to a name no other tag carries."""
        tag = self._tags.get_by_id(tag_id)
        if req.name != tag.name:
            try:
                self._tags.get_by_name(req.name)
            except NotFoundError:
                pass
            else:
                raise ConflictError("标签已存在")
        tag.name = req.name
        self._tags.update(tag)
        return self._response(tag)

    def delete_tag(self, tag_id: int) -> None:
        """Remove a tag together with its links to articles."""
        with self._db.transaction():
            self._article_tags.delete_by_tag_id(tag_id)
            self._tags.delete(tag_id)

    def get_tag(self, tag_id: int) -> TagResponse:
        return self._response(self._tags.get_by_id(tag_id))

    def get_all_tags(self) -> list[TagResponse]:
        return self._tags.get_all()

    def get_tag_list(self, params: TagQueryParams) -> TagPaginationResult:
        return self._tags.get_list(params)

    def get_hot_tags(self, limit: int) -> list[TagResponse]:
        return self._tags.get_hot_tags(limit)