import pytest

from inkblog.blog_schema import Category, CategoryQueryParams, total_pages
from inkblog.category_repo import CategoryRepository
from inkblog.store import ConflictError, Database, NotFoundError


@pytest.fixture
def db():
    database = Database(":memory:", "", True)
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return CategoryRepository(db)


def add_article(db, category_id, status="published"):
    db.connection.execute(
        f"INSERT INTO {db.table('article')} (title, content, author_id, category_id, status) "
        "VALUES ('title', 'content', 1, ?, ?)",
        (category_id, status),
    )


def test_create_and_get_round_trip(repo):
    created = repo.create(Category(name="travel", description="trips and places"))
    fetched = repo.get_by_id(created.id)
    assert fetched.name == "travel"
    assert fetched.description == "trips and places"
    assert fetched.created_at == created.created_at
    assert repo.get_by_name("travel").id == created.id


def test_missing_category_raises_not_found(repo):
    with pytest.raises(NotFoundError) as info:
        repo.get_by_id(404)
    assert info.value.message == "分类不存在"
    with pytest.raises(NotFoundError):
        repo.get_by_name("nothing")


def test_update_keeps_creation_time(repo):
    created = repo.create(Category(name="old", description="d"))
    original_created = created.created_at
    created.name = "new"
    repo.update(created)
    fetched = repo.get_by_id(created.id)
    assert fetched.name == "new"
    assert fetched.created_at == original_created
    assert fetched.updated_at >= original_created


def test_delete_refuses_category_with_articles(db, repo):
    category = repo.create(Category(name="busy"))
    add_article(db, category.id, status="draft")
    with pytest.raises(ConflictError) as info:
        repo.delete(category.id)
    assert info.value.message == "该分类下有文章，无法删除"
    assert repo.get_by_id(category.id).name == "busy"


def test_delete_removes_empty_category(repo):
    category = repo.create(Category(name="empty"))
    repo.delete(category.id)
    with pytest.raises(NotFoundError):
        repo.get_by_id(category.id)


def test_article_count_ignores_drafts(db, repo):
    category = repo.create(Category(name="c"))
    statuses = ["published", "published", "draft"]
    for status in statuses:
        add_article(db, category.id, status)
    assert repo.article_count(category.id) == statuses.count("published")


def test_get_all_includes_counts(db, repo):
    first = repo.create(Category(name="a"))
    second = repo.create(Category(name="b"))
    add_article(db, first.id)
    counts = {item.name: item.article_count for item in repo.get_all()}
    assert counts == {"a": repo.article_count(first.id), "b": repo.article_count(second.id)}
    assert counts["a"] > counts["b"]


def test_get_list_statistics(db, repo):
    names = ["a", "b", "c"]
    ids = {name: repo.create(Category(name=name)).id for name in names}
    published = [ids["a"], ids["a"], ids["b"]]
    for category_id in published:
        add_article(db, category_id)
    add_article(db, ids["b"], status="draft")
    add_article(db, None)

    result = repo.get_list(CategoryQueryParams())
    assert result.page == 1
    assert result.page_size == 10
    assert result.total_categories == len(names)
    assert result.total_articles == len(published)
    assert result.categories_with_article == len(set(published))
    assert result.category_name_with_most_article == "a"
    assert result.most_article_counts == published.count(ids["a"])
    by_name = {item.name: item.article_count for item in result.items}
    assert by_name["b"] == published.count(ids["b"])


def test_get_list_sorting(db, repo):
    ids = [repo.create(Category(name=name)).id for name in ["x", "y", "z"]]
    for category_id in [ids[2], ids[2], ids[1]]:
        add_article(db, category_id)
    by_count = repo.get_list(CategoryQueryParams(sort_by_article_count="desc")).items
    counts = [item.article_count for item in by_count]
    assert counts == sorted(counts, reverse=True)
    by_id = repo.get_list(CategoryQueryParams(sort_by_id="desc")).items
    assert [item.id for item in by_id] == sorted(ids, reverse=True)


def test_get_list_paging(repo):
    for name in ["p", "q", "r"]:
        repo.create(Category(name=name))
    first = repo.get_list(CategoryQueryParams(page=1, page_size=2, sort_by_id="asc"))
    second = repo.get_list(CategoryQueryParams(page=2, page_size=2, sort_by_id="asc"))
    assert first.total_pages == total_pages(first.total_categories, 2)
    assert len(first.items) == 2
    assert {i.id for i in first.items}.isdisjoint({i.id for i in second.items})
    assert len(first.items) + len(second.items) == first.total_categories


def test_get_list_on_empty_database(repo):
    result = repo.get_list(CategoryQueryParams())
    assert result.items == []
    assert result.category_name_with_most_article == ""
    assert result.most_article_counts == 0
    assert result.total_pages == 0