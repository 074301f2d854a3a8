import pytest

from inkblog.comment_schema import (
    ArticleCommentsRequest,
    Comment,
    CommentRepliesRequest,
    CommentResponse,
    CommentReviewListRequest,
    CommentStatus,
    CommentTreeRequest,
    CreateCommentRequest,
    PaginationRequest,
    ReviewCommentRequest,
    UserCommentsRequest,
)
from inkblog.store import BadRequestError


def test_comment_defaults_to_pending_top_level():
    comment = Comment(content="hi", author_id=1, article_id=2)
    assert comment.level == 1
    assert comment.status is CommentStatus.PENDING


def test_comment_status_from_int():
    comment = Comment(status=1)
    assert comment.status is CommentStatus.APPROVED
    response = CommentResponse(id=1, status=2)
    assert response.status is CommentStatus.REJECTED


def test_comment_rejects_unknown_status():
    with pytest.raises(ValueError):
        Comment(status=7)


def test_create_comment_requires_content():
    with pytest.raises(BadRequestError):
        CreateCommentRequest(content="", article_id=1)


def test_create_comment_requires_article():
    with pytest.raises(BadRequestError):
        CreateCommentRequest(content="hello", article_id=0)


def test_create_comment_keeps_parent():
    req = CreateCommentRequest(content="hello", article_id=3, parent_id=9)
    assert req.parent_id == 9


@pytest.mark.parametrize("status", [0, 3])
def test_review_request_status_must_be_decision(status):
    with pytest.raises(BadRequestError):
        ReviewCommentRequest(comment_id=1, status=status)


def test_review_request_converts_status():
    req = ReviewCommentRequest(comment_id=1, status=1, review_remark="ok")
    assert req.status is CommentStatus.APPROVED


def test_review_request_requires_comment_id():
    with pytest.raises(BadRequestError):
        ReviewCommentRequest(comment_id=0, status=2)


def test_review_list_requires_paging():
    with pytest.raises(BadRequestError):
        CommentReviewListRequest()
    with pytest.raises(BadRequestError):
        CommentReviewListRequest(page=1, page_size=101)


@pytest.mark.parametrize(
    "kwargs",
    [{"sort_by": "name"}, {"sort_order": "up"}, {"status": 5}],
)
def test_review_list_rejects_bad_options(kwargs):
    with pytest.raises(BadRequestError):
        CommentReviewListRequest(page=1, page_size=10, **kwargs)


def test_review_list_accepts_valid_options():
    req = CommentReviewListRequest(page=1, page_size=100, status=0, sort_by="review", sort_order="asc")
    assert req.status is CommentStatus.PENDING
    assert req.sort_by == "review"


def test_pagination_limits():
    assert PaginationRequest(page=1, page_size=30).page_size == 30
    with pytest.raises(BadRequestError):
        PaginationRequest(page_size=31)
    with pytest.raises(BadRequestError):
        PaginationRequest(page=-1)


def test_article_comments_request():
    req = ArticleCommentsRequest(page=2, sort_by_create="asc")
    assert req.include_pending is False
    assert req.page == 2
    with pytest.raises(BadRequestError):
        ArticleCommentsRequest(sort_by_create="up")
    with pytest.raises(BadRequestError):
        ArticleCommentsRequest(page_size=31)


def test_replies_request_rejects_negative_depth():
    with pytest.raises(BadRequestError):
        CommentRepliesRequest(max_depth=-1)
    assert CommentRepliesRequest(max_depth=3, include_replies=True).max_depth == 3


def test_tree_request_rejects_negative_depth():
    with pytest.raises(BadRequestError):
        CommentTreeRequest(max_depth=-1)


def test_user_comments_request_uses_paging_rules():
    with pytest.raises(BadRequestError):
        UserCommentsRequest(page_size=50)
    assert UserCommentsRequest(page=4).page == 4