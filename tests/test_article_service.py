from types import SimpleNamespace

import pytest

from inkblog.article_repo import ArticleRepository
from inkblog.article_service import ArticleService
from inkblog.article_tag_repo import ArticleTagRepository
from inkblog.blog_schema import (
    ArticleQueryParams,
    Category,
    CreateArticleRequest,
    Tag,
    UpdateArticleRequest,
)
from inkblog.category_repo import CategoryRepository
from inkblog.comment_repo import CommentRepository
from inkblog.comment_schema import Comment
from inkblog.interaction_repo import InteractionRepository
from inkblog.store import (
    BadRequestError,
    Database,
    ForbiddenError,
    InMemoryUserDirectory,
    NotFoundError,
)
from inkblog.tag_repo import TagRepository


@pytest.fixture
def env(tmp_path):
    db = Database(path=str(tmp_path / "blog.db"), table_prefix="", auto_migrate=True)
    users = InMemoryUserDirectory()
    users.add(1, "alice", "/avatars/alice.png")
    users.add(2, "bob", "/avatars/bob.png")
    articles = ArticleRepository(db)
    categories = CategoryRepository(db)
    tags = TagRepository(db)
    service = ArticleService(
        db, articles, categories, ArticleTagRepository(db), InteractionRepository(db), users
    )
    yield SimpleNamespace(
        db=db,
        service=service,
        articles=articles,
        categories=categories,
        tags=tags,
        comments=CommentRepository(db, users),
    )
    db.close()


def _publish(env, user_id=1, title="Hello", **kwargs):
    req = CreateArticleRequest(title=title, content="Body", status="published", **kwargs)
    return env.service.create_article(user_id, req)


def test_create_fills_author_tags_and_interactions(env):
    t1 = env.tags.create(Tag(name="go"))
    t2 = env.tags.create(Tag(name="web"))
    category = env.categories.create(Category(name="tech", description=""))
    created = _publish(env, tag_ids=[t2.id, t1.id], category_id=category.id)
    assert created.title == "Hello"
    assert created.author == "alice"
    assert created.author_avatar == "/avatars/alice.png"
    assert created.category_id == category.id
    assert sorted(created.tags) == sorted([t1.id, t2.id])
    assert created.interactions.liked is False
    assert created.interactions.favorited is False


def test_create_with_unknown_category_raises(env):
    with pytest.raises(NotFoundError):
        _publish(env, category_id=999)


def test_update_by_other_user_is_forbidden(env):
    created = _publish(env)
    with pytest.raises(ForbiddenError):
        env.service.update_article(2, created.id, UpdateArticleRequest(title="Nope"))


def test_update_changes_only_given_fields(env):
    created = _publish(env)
    tag = env.tags.create(Tag(name="python"))
    updated = env.service.update_article(
        1, created.id, UpdateArticleRequest(title="Renamed", tag_ids=[tag.id])
    )
    assert updated.title == "Renamed"
    assert updated.content == created.content
    assert updated.tags == [tag.id]


def test_delete_removes_article(env):
    created = _publish(env)
    with pytest.raises(ForbiddenError):
        env.service.delete_article(2, created.id)
    env.service.delete_article(1, created.id)
    with pytest.raises(NotFoundError):
        env.service.get_article(created.id, 1)


def test_like_toggles(env):
    created = _publish(env)
    assert env.service.like_article(2, created.id).interacted is True
    assert env.articles.get_by_id(created.id).like_count == 1
    assert env.service.get_article(created.id, 2).interactions.liked is True
    liked = env.service.get_user_liked_articles(2, 1, 10)
    assert [item.id for item in liked.items] == [created.id]
    assert env.service.like_article(2, created.id).interacted is False
    assert env.articles.get_by_id(created.id).like_count == 0


def test_favorite_toggles(env):
    created = _publish(env)
    assert env.service.favorite_article(2, created.id).interacted is True
    favorites = env.service.get_user_favorite_articles(2, 0, 0)
    assert [item.id for item in favorites.items] == [created.id]
    assert favorites.items[0].author == "alice"
    assert env.service.favorite_article(2, created.id).interacted is False
    assert env.articles.get_by_id(created.id).favorite_count == 0


def test_view_counts_and_records_history(env):
    created = _publish(env)
    env.service.view_article(2, created.id)
    env.service.view_article(0, created.id)
    assert env.articles.get_by_id(created.id).view_count == 2
    history = env.service.get_user_view_history(2, 1, 10)
    assert [item.id for item in history.items] == [created.id]
    assert env.service.get_user_view_history(0, 1, 10).total == 0


def test_current_author_needs_user(env):
    with pytest.raises(BadRequestError):
        env.service.get_article_list(ArticleQueryParams(author="current"), 0)


def test_article_list_of_current_user(env):
    mine = _publish(env, user_id=1, title="Mine")
    _publish(env, user_id=2, title="Theirs")
    result = env.service.get_article_list(ArticleQueryParams(author="current"), 1)
    assert [item.id for item in result.items] == [mine.id]
    assert result.items[0].author == "alice"


def test_hot_articles_follow_view_count(env):
    first = _publish(env, title="First")
    second = _publish(env, title="Second")
    env.service.view_article(0, second.id)
    hot = env.service.get_hot_articles(5)
    assert [item.id for item in hot] == [second.id, first.id]
    latest = env.service.get_latest_articles(1)
    assert len(latest) == 1


def test_commented_articles(env):
    created = _publish(env)
    env.comments.create(Comment(content="nice", author_id=2, article_id=created.id))
    result = env.service.get_user_commented_articles(2, 1, 10)
    assert [item.id for item in result.items] == [created.id]


def test_save_cover_writes_file(env, tmp_path):
    cover = env.service.save_cover("photo.png", b"image-bytes", tmp_path)
    assert cover.url.startswith("/pic/covers/")
    assert cover.url.endswith(".png")
    saved = tmp_path / cover.url.lstrip("/")
    assert saved.read_bytes() == b"image-bytes"


def test_save_cover_rejects_other_files(env, tmp_path):
    with pytest.raises(BadRequestError):
        env.service.save_cover("notes.txt", b"text", tmp_path)