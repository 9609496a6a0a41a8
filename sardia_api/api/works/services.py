# sardia_api/api/works/services.py
import logging
import uuid
from typing import Optional, Dict, Any, List
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from sardia_api.core.errors import BadRequestError, CommentNotFoundError, WorkNotFoundError
from sardia_api.models.work import Work, Comment, CommentStatus
from sardia_api.services.storage_service import StorageService
from sardia_api.utils.datetime_utils import DateTimeUtils
from sardia_api.utils.pagination import clamp_pagination, offset_for, page_count
from sardia_api.utils import text_search

EDITABLE_FIELDS = ('title', 'excerpt', 'full_content')


class WorkService:
    """
    작품(works) 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 작품 CRUD, 좋아요, 댓글 작성/검토, 검색을 포함합니다.
    - 모든 쓰기는 단일 문서 단위로 원자적으로 처리합니다.
    """
    def __init__(self,
                 db,
                 storage_service: StorageService,
                 placeholder_image: str = 'placeholder',
                 max_page_limit: int = 100,
                 default_page_limit: int = 10):
        self.db = db
        self.works_ref = self.db.collection('works')
        self.storage_service = storage_service
        self.placeholder_image = placeholder_image
        self.max_page_limit = max_page_limit
        self.default_page_limit = default_page_limit

    # --- 내부 헬퍼 ---

    def _to_work(self, doc) -> Work:
        data = doc.to_dict()
        data.setdefault('work_id', doc.id)
        return Work.from_dict(data)

    def _get_snapshot(self, work_id: str):
        doc = self.works_ref.document(work_id).get()
        if not doc.exists:
            raise WorkNotFoundError()
        return doc

    def _release_image(self, image_url: Optional[str]) -> None:
        """플레이스홀더가 아닌 이미지만 삭제를 시도합니다. 실패는 StorageService가 로그로 남깁니다."""
        if not image_url or image_url == self.placeholder_image:
            return
        self.storage_service.delete_image(image_url)

    def _paginate(self, page: Any, limit: Any):
        return clamp_pagination(page, limit, self.max_page_limit, self.default_page_limit)

    # --- 조회 ---

    def list_works(self, page: Any = None, limit: Any = None) -> Dict[str, Any]:
        """작품 목록을 최신순으로 페이지네이션하여 조회합니다. (승인된 댓글만 포함)"""
        page, limit = self._paginate(page, limit)

        total = self.works_ref.count().get()[0][0].value
        query = (self.works_ref
                 .order_by('created_at', direction=firestore.Query.DESCENDING)
                 .offset(offset_for(page, limit))
                 .limit(limit))
        works = [self._to_work(doc).approved_only() for doc in query.stream()]

        return {"works": works, "total": total, "page": page, "pages": page_count(total, limit)}

    def get_work(self, work_id: str) -> Work:
        """공개용 작품 상세 조회. 승인된 댓글만 포함합니다."""
        return self.get_work_raw(work_id).approved_only()

    def get_work_raw(self, work_id: str) -> Work:
        """[관리자 전용] 모든 상태의 댓글을 포함한 작품 정보를 조회합니다."""
        return self._to_work(self._get_snapshot(work_id))

    def search_works(self, query: Optional[str], page: Any = None, limit: Any = None) -> Dict[str, Any]:
        """
        제목/발췌/본문을 대상으로 작품을 검색합니다.
        관련도 내림차순, 같은 점수는 최신 작품 먼저 정렬합니다.
        """
        if not query or not query.strip():
            raise BadRequestError("Search query is required")
        page, limit = self._paginate(page, limit)

        works = (self._to_work(doc) for doc in self.works_ref.stream())
        ranked = text_search.rank(query, works, lambda work: work.search_fields())
        ranked.sort(key=lambda pair: (pair[0], pair[1].created_at), reverse=True)

        total = len(ranked)
        start = offset_for(page, limit)
        results = [work.approved_only() for _, work in ranked[start:start + limit]]
        logging.info(f"작품 검색 완료 (query: {query!r}, total: {total})")

        return {"works": results, "total": total, "page": page, "pages": page_count(total, limit)}

    # --- 작품 쓰기 (관리자) ---

    def create_work(self, title: str, excerpt: str, full_content: str, image_url: Optional[str] = None) -> Work:
        """새 작품을 생성합니다. 이미지가 없으면 플레이스홀더 값을 사용합니다."""
        work_id = str(uuid.uuid4())
        new_work = Work(
            work_id=work_id,
            title=title.strip(),
            excerpt=excerpt,
            full_content=full_content,
            image_url=image_url or self.placeholder_image,
        )
        try:
            self.works_ref.document(work_id).set(new_work.to_dict())
        except Exception as e:
            logging.error(f"작품 생성 실패 (title: {title}): {e}", exc_info=True)
            raise
        logging.info(f"작품 생성 완료 (work_id: {work_id})")
        return new_work

    def update_work(self, work_id: str, fields: Dict[str, Any], image_url: Optional[str] = None) -> Work:
        """
        작품을 부분 수정합니다.
        - 전달된 필드만 변경되며, 새 이미지가 없으면 image_url은 그대로 유지됩니다.
        - 새 이미지로 교체되면 이전 이미지는 교체 후 삭제를 시도합니다.
        """
        work_ref = self.works_ref.document(work_id)
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        if 'title' in changes:
            changes['title'] = changes['title'].strip()
        if image_url:
            changes['image_url'] = image_url

        transaction = self.db.transaction()

        @firestore.transactional
        def _update_in_transaction(transaction):
            snapshot = work_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise WorkNotFoundError()
            previous_image = snapshot.to_dict().get('image_url')
            if changes:
                transaction.update(work_ref, {**changes, 'updated_at': DateTimeUtils.now()})
            return previous_image

        previous_image = _update_in_transaction(transaction)
        logging.info(f"작품 수정 완료 (work_id: {work_id}, fields: {list(changes.keys())})")

        if image_url and previous_image != image_url:
            self._release_image(previous_image)
        return self.get_work_raw(work_id)

    def delete_work(self, work_id: str) -> None:
        """작품을 삭제하고, 연결된 이미지도 삭제를 시도합니다."""
        work_ref = self.works_ref.document(work_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _delete_in_transaction(transaction):
            snapshot = work_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise WorkNotFoundError()
            transaction.delete(work_ref)
            return snapshot.to_dict().get('image_url')

        image_url = _delete_in_transaction(transaction)
        logging.info(f"작품 삭제 완료 (work_id: {work_id})")
        self._release_image(image_url)

    def delete_work_image(self, work_id: str) -> Work:
        """작품 이미지를 삭제하고 image_url을 플레이스홀더로 되돌립니다."""
        work_ref = self.works_ref.document(work_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _reset_in_transaction(transaction):
            snapshot = work_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise WorkNotFoundError()
            previous_image = snapshot.to_dict().get('image_url')
            if previous_image != self.placeholder_image:
                transaction.update(work_ref, {
                    'image_url': self.placeholder_image,
                    'updated_at': DateTimeUtils.now(),
                })
            return previous_image

        previous_image = _reset_in_transaction(transaction)
        self._release_image(previous_image)
        return self.get_work_raw(work_id)

    # --- 공개 상호작용 ---

    def increment_likes(self, work_id: str) -> int:
        """
        좋아요 수를 서버 측 Increment로 1 증가시키고, 이 요청이 만든 값을 반환합니다.
        읽기와 증가를 한 트랜잭션에서 수행하므로 동시에 들어온 다른 요청의 증가분은 섞이지 않습니다.
        """
        work_ref = self.works_ref.document(work_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _like_in_transaction(transaction):
            snapshot = work_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise WorkNotFoundError()
            transaction.update(work_ref, {'likes': firestore.Increment(1)})
            return (snapshot.to_dict().get('likes') or 0) + 1

        try:
            return _like_in_transaction(transaction)
        except google_exceptions.NotFound:
            raise WorkNotFoundError()

    def add_comment(self, work_id: str, author: str, text: str) -> Comment:
        """
        새 댓글을 검토 대기(pending) 상태로 추가합니다.
        클라이언트가 보낸 status 값은 사용하지 않습니다.
        """
        new_comment = Comment(comment_id=str(uuid.uuid4()), author=author, text=text)
        try:
            self.works_ref.document(work_id).update({
                'comments': firestore.ArrayUnion([new_comment.to_dict()])
            })
        except google_exceptions.NotFound:
            raise WorkNotFoundError()
        logging.info(f"댓글 작성 완료 (work_id: {work_id}, comment_id: {new_comment.comment_id})")
        return new_comment

    # --- 댓글 검토 (관리자) ---

    def list_pending_comments(self) -> List[Dict[str, Any]]:
        """모든 작품에서 검토 대기 중인 댓글을 최신순으로 모아 반환합니다."""
        pending = []
        for doc in self.works_ref.stream():
            work = self._to_work(doc)
            for comment in work.comments:
                if comment.status is CommentStatus.PENDING:
                    pending.append({"work_id": work.work_id, "work_title": work.title, "comment": comment})
        pending.sort(key=lambda item: item['comment'].created_at, reverse=True)
        return pending

    def _modify_comments(self, work_id: str, comment_id: str, modify) -> None:
        """
        트랜잭션 안에서 댓글 배열을 읽고, modify(comments, index)가 돌려준 배열로 교체합니다.
        """
        work_ref = self.works_ref.document(work_id)
        transaction = self.db.transaction()

        @firestore.transactional
        def _modify_in_transaction(transaction):
            snapshot = work_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise WorkNotFoundError()
            comments = snapshot.to_dict().get('comments') or []
            index = next((i for i, c in enumerate(comments) if c.get('comment_id') == comment_id), None)
            if index is None:
                raise CommentNotFoundError()
            transaction.update(work_ref, {'comments': modify(list(comments), index)})

        _modify_in_transaction(transaction)

    def _set_comment_status(self, work_id: str, comment_id: str, status: CommentStatus) -> None:
        def _with_status(comments, index):
            comments[index] = {**comments[index], 'status': status.value}
            return comments

        self._modify_comments(work_id, comment_id, _with_status)
        logging.info(f"댓글 상태 변경 (work_id: {work_id}, comment_id: {comment_id}, status: {status.value})")

    def approve_comment(self, work_id: str, comment_id: str) -> None:
        self._set_comment_status(work_id, comment_id, CommentStatus.APPROVED)

    def reject_comment(self, work_id: str, comment_id: str) -> None:
        self._set_comment_status(work_id, comment_id, CommentStatus.REJECTED)

    def delete_comment(self, work_id: str, comment_id: str) -> None:
        """댓글을 작품 문서의 배열에서 완전히 제거합니다."""
        def _without(comments, index):
            del comments[index]
            return comments

        self._modify_comments(work_id, comment_id, _without)
        logging.info(f"댓글 삭제 완료 (work_id: {work_id}, comment_id: {comment_id})")
