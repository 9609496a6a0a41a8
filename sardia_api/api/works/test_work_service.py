# sardia_api/api/works/test_work_service.py
"""
WorkService 테스트 (인메모리 Firestore 대역 사용)

사용법: python -m pytest sardia_api/api/works/test_work_service.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from sardia_api.api.works.services import WorkService
from sardia_api.core.errors import BadRequestError, CommentNotFoundError, WorkNotFoundError
from sardia_api.models.work import CommentStatus

PLACEHOLDER = 'placeholder'


@pytest.fixture
def storage():
    return MagicMock()


@pytest.fixture
def service(fake_db, storage):
    return WorkService(fake_db, storage, placeholder_image=PLACEHOLDER, max_page_limit=100)


def _make_work(service, title="Title", image_url=None, **kwargs):
    return service.create_work(title, kwargs.get('excerpt', 'Excerpt'), kwargs.get('full_content', 'Body'), image_url)


def _backdate(fake_db, work_id, minutes):
    doc = fake_db.collection('works')._docs[work_id]
    doc['created_at'] = doc['created_at'] - timedelta(minutes=minutes)


def test_create_without_image_uses_placeholder(service):
    work = _make_work(service, title="  Spaced title  ")
    assert work.image_url == PLACEHOLDER
    assert work.title == "Spaced title"
    assert work.likes == 0
    assert work.comments == []


def test_get_missing_work_raises_not_found(service):
    with pytest.raises(WorkNotFoundError):
        service.get_work('missing')


def test_list_works_paginates_newest_first(service, fake_db):
    ids = []
    for i in range(5):
        ids.append(_make_work(service, title=f"Work {i}").work_id)
        _backdate(fake_db, ids[-1], minutes=10 - i)

    first_page = service.list_works(page=1, limit=2)
    assert first_page['total'] == 5
    assert first_page['pages'] == 3
    assert first_page['page'] == 1
    assert [w.title for w in first_page['works']] == ["Work 4", "Work 3"]

    last_page = service.list_works(page=3, limit=2)
    assert [w.title for w in last_page['works']] == ["Work 0"]


def test_list_works_defaults_for_bad_pagination(service):
    _make_work(service)
    result = service.list_works(page="abc", limit="-1")
    assert result['page'] == 1
    assert result['pages'] == 1


def test_new_comment_is_pending_and_hidden_from_public_reads(service):
    work = _make_work(service)
    comment = service.add_comment(work.work_id, "reader", "lovely")
    assert comment.status is CommentStatus.PENDING

    assert service.get_work(work.work_id).comments == []
    assert service.list_works()['works'][0].comments == []
    assert [c.comment_id for c in service.get_work_raw(work.work_id).comments] == [comment.comment_id]


def test_approved_comment_becomes_public(service):
    work = _make_work(service)
    comment = service.add_comment(work.work_id, "reader", "lovely")
    service.approve_comment(work.work_id, comment.comment_id)

    public = service.get_work(work.work_id)
    assert len(public.comments) == 1
    assert public.comments[0].status is CommentStatus.APPROVED
    assert public.comments[0].author == "reader"


def test_comments_are_returned_newest_first(service):
    work = _make_work(service)
    first = service.add_comment(work.work_id, "a", "first")
    second = service.add_comment(work.work_id, "b", "second")
    comments = service.get_work_raw(work.work_id).comments
    assert [c.comment_id for c in comments] == [second.comment_id, first.comment_id]


def test_rejected_comment_stays_hidden(service):
    work = _make_work(service)
    comment = service.add_comment(work.work_id, "spam", "buy now")
    service.reject_comment(work.work_id, comment.comment_id)

    assert service.get_work(work.work_id).comments == []
    assert service.get_work_raw(work.work_id).comments[0].status is CommentStatus.REJECTED
    assert service.list_pending_comments() == []


def test_comment_on_missing_work_raises(service):
    with pytest.raises(WorkNotFoundError):
        service.add_comment('missing', "a", "b")


def test_moderation_of_unknown_comment_raises(service):
    work = _make_work(service)
    with pytest.raises(CommentNotFoundError):
        service.approve_comment(work.work_id, 'nope')
    with pytest.raises(CommentNotFoundError):
        service.delete_comment(work.work_id, 'nope')
    with pytest.raises(WorkNotFoundError):
        service.approve_comment('missing', 'nope')


def test_delete_comment_removes_it(service):
    work = _make_work(service)
    keep = service.add_comment(work.work_id, "a", "keep")
    drop = service.add_comment(work.work_id, "b", "drop")
    service.delete_comment(work.work_id, drop.comment_id)
    assert [c.comment_id for c in service.get_work_raw(work.work_id).comments] == [keep.comment_id]


def test_list_pending_comments_across_works(service):
    first = _make_work(service, title="First")
    second = _make_work(service, title="Second")
    c1 = service.add_comment(first.work_id, "a", "one")
    c2 = service.add_comment(second.work_id, "b", "two")
    service.add_comment(second.work_id, "c", "three")
    service.approve_comment(second.work_id, c2.comment_id)

    pending = service.list_pending_comments()
    assert len(pending) == 2
    assert {item['work_title'] for item in pending} == {"First", "Second"}
    assert c1.comment_id in {item['comment'].comment_id for item in pending}
    assert all(item['comment'].status is CommentStatus.PENDING for item in pending)


def test_increment_likes(service):
    work = _make_work(service)
    assert service.increment_likes(work.work_id) == 1
    assert service.increment_likes(work.work_id) == 2
    with pytest.raises(WorkNotFoundError):
        service.increment_likes('missing')


def test_concurrent_likes_are_not_lost(service):
    work = _make_work(service)
    with ThreadPoolExecutor(max_workers=8) as pool:
        returned = list(pool.map(lambda _: service.increment_likes(work.work_id), range(50)))
    assert service.get_work(work.work_id).likes == 50
    # 각 요청은 자기 증가분이 반영된 값을 받습니다.
    assert sorted(returned) == list(range(1, 51))


def test_partial_update_leaves_other_fields(service, storage):
    work = _make_work(service, image_url='/uploads/image-1.png', excerpt='Old excerpt', full_content='Old body')
    updated = service.update_work(work.work_id, {'title': 'New title'})

    assert updated.title == 'New title'
    assert updated.excerpt == 'Old excerpt'
    assert updated.full_content == 'Old body'
    assert updated.image_url == '/uploads/image-1.png'
    assert updated.updated_at is not None
    storage.delete_image.assert_not_called()


def test_update_with_new_image_releases_previous(service, storage):
    work = _make_work(service, image_url='/uploads/image-old.png')
    updated = service.update_work(work.work_id, {}, image_url='/uploads/image-new.png')
    assert updated.image_url == '/uploads/image-new.png'
    storage.delete_image.assert_called_once_with('/uploads/image-old.png')


def test_update_replacing_placeholder_releases_nothing(service, storage):
    work = _make_work(service)
    service.update_work(work.work_id, {}, image_url='/uploads/image-new.png')
    storage.delete_image.assert_not_called()


def test_update_missing_work_raises(service):
    with pytest.raises(WorkNotFoundError):
        service.update_work('missing', {'title': 'x'})


def test_delete_placeholder_work_makes_no_storage_call(service, storage):
    work = _make_work(service)
    service.delete_work(work.work_id)
    storage.delete_image.assert_not_called()
    with pytest.raises(WorkNotFoundError):
        service.get_work(work.work_id)


def test_delete_work_with_image_deletes_it_once(service, storage):
    work = _make_work(service, image_url='/uploads/image-1.png')
    service.delete_work(work.work_id)
    storage.delete_image.assert_called_once_with('/uploads/image-1.png')


def test_delete_missing_work_raises(service):
    with pytest.raises(WorkNotFoundError):
        service.delete_work('missing')


def test_delete_work_image_resets_to_placeholder(service, storage):
    work = _make_work(service, image_url='/uploads/image-1.png')
    updated = service.delete_work_image(work.work_id)
    assert updated.image_url == PLACEHOLDER
    storage.delete_image.assert_called_once_with('/uploads/image-1.png')

    storage.delete_image.reset_mock()
    service.delete_work_image(work.work_id)
    storage.delete_image.assert_not_called()


def test_search_requires_query(service):
    with pytest.raises(BadRequestError):
        service.search_works("   ")
    with pytest.raises(BadRequestError):
        service.search_works(None)


def test_search_ranks_by_relevance_then_recency(service, fake_db):
    body_match = _make_work(service, title="Evening", full_content="the river at dusk")
    older_title = _make_work(service, title="River song")
    newer_title = _make_work(service, title="River song")
    _make_work(service, title="Mountain", full_content="stone and snow")
    _backdate(fake_db, older_title.work_id, minutes=30)

    result = service.search_works("river")
    assert result['total'] == 3
    assert [w.work_id for w in result['works']] == [
        newer_title.work_id, older_title.work_id, body_match.work_id
    ]


def test_search_results_hide_unapproved_comments(service):
    work = _make_work(service, title="River")
    service.add_comment(work.work_id, "a", "pending one")
    result = service.search_works("river")
    assert result['works'][0].comments == []
