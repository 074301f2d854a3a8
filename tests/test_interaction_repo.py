from datetime import datetime, timedelta

import pytest

from inkblog.article_repo import ArticleRepository
from inkblog.blog_schema import Article, UserInteraction
from inkblog.interaction_repo import InteractionRepository
from inkblog.store import Database, NotFoundError


@pytest.fixture
def db():
    database = Database()
    yield database
    database.close()


@pytest.fixture
def repo(db):
    return InteractionRepository(db)


@pytest.fixture
def articles(db):
    return ArticleRepository(db)


def _article(articles, title):
    return articles.create(
        Article(title=title, content="body", author_id=1, status="published")
    )


def test_get_missing_raises(repo):
    with pytest.raises(NotFoundError, match="用户 7 与文章 9 的 like 交互不存在"):
        repo.get(7, 9, "like")


def test_create_then_get(repo):
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="like"))
    found = repo.get(1, 2, "like")
    assert (found.user_id, found.article_id, found.type) == (1, 2, "like")
    assert found.created_at is not None


def test_create_twice_keeps_single_record(repo):
    first = datetime(2024, 1, 1, 8, 0, 0)
    later = datetime(2024, 2, 1, 8, 0, 0)
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="like", created_at=first))
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="like", created_at=later))
    assert repo.get(1, 2, "like").created_at == later
    repo.delete(1, 2, "like")
    with pytest.raises(NotFoundError):
        repo.get(1, 2, "like")


def test_user_interactions_flags(repo):
    assert repo.get_user_interactions(1, 2).liked is False
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="favorite"))
    state = repo.get_user_interactions(1, 2)
    assert state.favorited is True
    assert state.liked is False
    assert repo.get_user_interactions(3, 2).favorited is False


def test_delete_only_matching_type(repo):
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="like"))
    repo.create_or_update(UserInteraction(user_id=1, article_id=2, type="favorite"))
    repo.delete(1, 2, "like")
    state = repo.get_user_interactions(1, 2)
    assert (state.liked, state.favorited) == (False, True)


def test_record_view_twice_counts_once(repo, articles):
    article = _article(articles, "seen")
    repo.record_view(5, article.id)
    repo.record_view(5, article.id)
    history = repo.get_user_view_history(5, 1, 10)
    assert history.total == len(history.items)
    assert [item.id for item in history.items] == [article.id]
    assert history.items[0].interaction_time is not None


def test_view_history_most_recent_first(repo, articles):
    older = _article(articles, "older")
    newer = _article(articles, "newer")
    base = datetime(2024, 3, 1, 12, 0, 0)
    repo.create_or_update(
        UserInteraction(user_id=5, article_id=newer.id, type="view", created_at=base)
    )
    repo.create_or_update(
        UserInteraction(
            user_id=5, article_id=older.id, type="view", created_at=base + timedelta(hours=1)
        )
    )
    history = repo.get_user_view_history(5, 1, 10)
    assert [item.title for item in history.items] == ["older", "newer"]
    assert history.items[0].interaction_time == base + timedelta(hours=1)


def test_view_history_ignores_likes_and_other_users(repo, articles):
    article = _article(articles, "liked only")
    repo.create_or_update(UserInteraction(user_id=5, article_id=article.id, type="like"))
    repo.record_view(6, article.id)
    history = repo.get_user_view_history(5, 1, 10)
    assert history.items == []
    assert history.total == len(history.items)


def test_view_history_default_paging(repo, articles):
    titles = ["a", "b", "c"]
    for title in titles:
        repo.record_view(5, _article(articles, title).id)
    history = repo.get_user_view_history(5, 0, 0)
    assert history.page == 1
    assert history.page_size == 10
    paged = repo.get_user_view_history(5, 1, 1)
    assert paged.total_pages == len(titles)
    assert len(paged.items) == 1