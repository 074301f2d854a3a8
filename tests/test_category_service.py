import pytest

from inkblog.blog_schema import (
    CategoryQueryParams,
    CreateCategoryRequest,
    UpdateCategoryRequest,
)
from inkblog.category_repo import CategoryRepository
from inkblog.category_service import CategoryService
from inkblog.store import ConflictError, Database, NotFoundError


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


@pytest.fixture
def service(db):
    return CategoryService(CategoryRepository(db))


def add_article(db, category_id):
    db.connection.execute(
        f"INSERT INTO {db.table('article')} (title, content, author_id, category_id, status) "
        "VALUES ('title', 'content', 1, ?, 'published')",
        (category_id,),
    )


def test_create_category_returns_response(service):
    created = service.create_category(CreateCategoryRequest(name="life", description="daily"))
    assert created.name == "life"
    assert created.description == "daily"
    assert created.article_count == 0
    assert service.get_category(created.id) == created


def test_create_duplicate_category_conflicts(service):
    service.create_category(CreateCategoryRequest(name="dup"))
    with pytest.raises(ConflictError) as info:
        service.create_category(CreateCategoryRequest(name="dup"))
    assert info.value.message == "分类已存在"


def test_update_changes_only_given_fields(service):
    created = service.create_category(CreateCategoryRequest(name="a", description="keep"))
    updated = service.update_category(created.id, UpdateCategoryRequest(name="b"))
    assert updated.name == "b"
    assert updated.description == "keep"
    assert updated.created_at == created.created_at


def test_update_missing_category(service):
    with pytest.raises(NotFoundError):
        service.update_category(99, UpdateCategoryRequest(name="x"))


def test_delete_category(service):
    created = service.create_category(CreateCategoryRequest(name="gone"))
    service.delete_category(created.id)
    with pytest.raises(NotFoundError):
        service.get_category(created.id)


def test_delete_category_in_use_conflicts(db, service):
    created = service.create_category(CreateCategoryRequest(name="used"))
    add_article(db, created.id)
    with pytest.raises(ConflictError):
        service.delete_category(created.id)


def test_response_counts_published_articles(db, service):
    created = service.create_category(CreateCategoryRequest(name="counted"))
    add_article(db, created.id)
    assert service.get_category(created.id).article_count == 1


def test_all_and_paginated_lists_agree(service):
    names = ["one", "two", "three"]
    for name in names:
        service.create_category(CreateCategoryRequest(name=name))
    all_names = sorted(item.name for item in service.get_all_categories())
    page = service.get_category_list(CategoryQueryParams(page_size=10))
    assert all_names == sorted(names)
    assert sorted(item.name for item in page.items) == all_names
    assert page.total_categories == len(names)