"""找搭子请求: 意向切换, 关闭/重开, 级联删除."""

import pytest
from sqlmodel import select

from services.db.models import RequestComment, RequestInterest, RequestStatus, TrekRequest
from services.errors import Forbidden, NotFound, SelfInterest, ValidationError
from services.trek_requests import TrekRequestService


@pytest.fixture
def trek(session, alice, cusco):
    return TrekRequestService(session).create_request(
        alice.id, cusco.id, "Salkantay in 5 days", "Looking for 2 more", "2026-06-01", "2026-06-05"
    )


def test_toggle_interest(session, bob, trek):
    service = TrekRequestService(session)

    assert service.toggle_interest(bob.id, trek.id) == {"interested": True}
    detail = service.get_request(trek.id, viewer_id=bob.id)
    assert detail["interest_count"] == 1
    assert detail["has_expressed_interest"] is True
    assert [u["username"] for u in detail["interested_users"]] == ["bob"]

    assert service.toggle_interest(bob.id, trek.id) == {"interested": False}
    assert service.get_request(trek.id)["interest_count"] == 0


@pytest.mark.parametrize("close_first", [False, True])
def test_author_can_never_be_interested(session, alice, trek, close_first):
    service = TrekRequestService(session)
    if close_first:
        service.close_request(alice.id, trek.id)

    with pytest.raises(Forbidden) as exc_info:
        service.toggle_interest(alice.id, trek.id)

    assert isinstance(exc_info.value, SelfInterest)
    assert session.exec(select(RequestInterest)).all() == []


def test_close_and_reopen(session, alice, bob, cusco, trek):
    service = TrekRequestService(session)
    service.toggle_interest(bob.id, trek.id)
    service.add_comment(bob.id, trek.id, "I'm in")

    with pytest.raises(Forbidden):
        service.close_request(bob.id, trek.id)

    closed = service.close_request(alice.id, trek.id)
    assert closed.status == RequestStatus.CLOSED
    assert service.get_requests_by_city(cusco.id) == []
    assert len(service.get_requests_by_city(cusco.id, status_filter=RequestStatus.CLOSED)) == 1

    with pytest.raises(Forbidden):
        service.reopen_request(bob.id, trek.id)
    assert service.reopen_request(alice.id, trek.id).status == RequestStatus.OPEN

    # 状态切换不影响已有意向和评论
    detail = service.get_request(trek.id)
    assert detail["interest_count"] == 1
    assert len(detail["comments"]) == 1


def test_listing_counts(session, bob, carol, cusco, trek):
    service = TrekRequestService(session)
    service.toggle_interest(bob.id, trek.id)
    service.toggle_interest(carol.id, trek.id)
    service.add_comment(carol.id, trek.id, "what pace?")

    entry = service.get_requests_by_city(cusco.id, viewer_id=carol.id)[0]
    assert entry["interest_count"] == 2
    assert entry["comment_count"] == 1
    assert entry["has_expressed_interest"] is True


def test_description_limit(session, alice, cusco):
    with pytest.raises(ValidationError) as exc_info:
        TrekRequestService(session).create_request(alice.id, cusco.id, "t", "d" * 2001, "2026-06-01")

    assert exc_info.value.field == "description"
    assert exc_info.value.limit == 2000


@pytest.mark.parametrize("comments, interests", [(0, 0), (2, 3)])
def test_delete_request_cascades(session, make_user, alice, trek, comments, interests):
    service = TrekRequestService(session)
    request_id = trek.id
    for i in range(comments):
        service.add_comment(alice.id, request_id, f"update {i}")
    for i in range(interests):
        service.toggle_interest(make_user(f"buddy{i}").id, request_id)

    with pytest.raises(Forbidden):
        service.delete_request(make_user("stranger").id, request_id)

    service.delete_request(alice.id, request_id)

    assert session.get(TrekRequest, request_id) is None
    assert session.exec(select(RequestComment).where(RequestComment.request_id == request_id)).all() == []
    assert session.exec(select(RequestInterest).where(RequestInterest.request_id == request_id)).all() == []
    assert service.get_request(request_id) is None


def test_interest_on_missing_request(session, bob):
    with pytest.raises(NotFound):
        TrekRequestService(session).toggle_interest(bob.id, 404)
