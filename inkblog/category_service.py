"""Business rules for categories."""

from __future__ import annotations

from inkblog.blog_schema import (
    Category,
    CategoryPaginationResult,
    CategoryQueryParams,
    CategoryResponse,
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from inkblog.category_repo import CategoryRepository
from inkblog.store import ConflictError, NotFoundError


class CategoryService:
    """Creates, changes and lists categories."""

    def __init__(self, categories: CategoryRepository) -> None:
        self._categories = categories

    def _response(self, category: Category) -> CategoryResponse:
        return CategoryResponse(
            id=category.id,
            name=category.name,
            description=category.description,
            article_count=self._categories.article_count(category.id),
            created_at=category.created_at,
            updated_at=category.updated_at,
        )

    def create_category(self, req: CreateCategoryRequest) -> CategoryResponse:
        """Create a category whose name is not taken yet."""
        try:
            self._categories.get_by_name(req.name)
        except NotFoundError:
            category = Category(name=req.name, description=req.description)
            self._categories.create(category)
            return self._response(category)
        raise ConflictError("分类已存在")

    def update_category(self, category_id: int, req: UpdateCategoryRequest) -> CategoryResponse:
        """Change the non-empty fields of a category."""
        category = self._categories.get_by_id(category_id)
        if req.name:
            category.name = req.name
        if req.description:
            category.description = req.description
        self._categories.update(category)
        return self._response(category)

    def delete_category(self, category_id: int) -> None:
        self._categories.delete(category_id)

    def get_category(self, category_id: int) -> CategoryResponse:
        return self._response(self._categories.get_by_id(category_id))

    def get_all_categories(self) -> list[CategoryResponse]:
        return self._categories.get_all()

    def get_category_list(self, params: CategoryQueryParams) -> CategoryPaginationResult:
        return self._categories.get_list(params)