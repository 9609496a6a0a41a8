# sardia_api/models/work.py
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
import logging

from sardia_api.utils.datetime_utils import DateTimeUtils


class CommentStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class Comment:
    """
    Work 문서의 'comments' 배열에 포함되는 댓글.
    독립된 컬렉션 없이 작품 문서 안에서만 존재합니다.
    """
    comment_id: str
    author: str
    text: str
    status: CommentStatus = CommentStatus.PENDING
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @property
    def is_approved(self) -> bool:
        return self.status is CommentStatus.APPROVED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        processed_data = DateTimeUtils.from_firestore(dict(data))
        status_str = processed_data.get('status')
        try:
            processed_data['status'] = CommentStatus(status_str)
        except ValueError:
            # 상태값이 없는 예전 댓글은 검토 대기 상태로 취급
            logging.warning(f"Invalid comment status '{status_str}' for comment {processed_data.get('comment_id')}. Defaulting to pending.")
            processed_data['status'] = CommentStatus.PENDING
        return cls(
            comment_id=processed_data['comment_id'],
            author=processed_data.get('author', ''),
            text=processed_data.get('text', ''),
            status=processed_data['status'],
            created_at=processed_data.get('created_at') or DateTimeUtils.now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        comment_dict = asdict(self)
        comment_dict['status'] = self.status.value
        return DateTimeUtils.for_firestore(comment_dict)


@dataclass
class Work:
    """
    Firestore 'works' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    comments는 최신 댓글이 앞에 오도록 정렬된 상태로 보관합니다.
    (Firestore 배열에는 작성 순서대로 저장됩니다.)
    """
    work_id: str
    title: str
    excerpt: str
    full_content: str
    image_url: str
    likes: int = 0
    comments: List[Comment] = field(default_factory=list)
    created_at: datetime = field(default_factory=DateTimeUtils.now)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Work":
        processed_data = DateTimeUtils.from_firestore(dict(data))
        stored_comments = processed_data.get('comments') or []
        return cls(
            work_id=processed_data['work_id'],
            title=processed_data.get('title', ''),
            excerpt=processed_data.get('excerpt', ''),
            full_content=processed_data.get('full_content', ''),
            image_url=processed_data.get('image_url') or '',
            likes=processed_data.get('likes') or 0,
            comments=[Comment.from_dict(c) for c in reversed(stored_comments)],
            created_at=processed_data.get('created_at') or DateTimeUtils.now(),
            updated_at=processed_data.get('updated_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Firestore 저장용 딕셔너리. 댓글은 작성 순서(오래된 것 먼저)로 되돌립니다."""
        return {
            'work_id': self.work_id,
            'title': self.title,
            'excerpt': self.excerpt,
            'full_content': self.full_content,
            'image_url': self.image_url,
            'likes': self.likes,
            'comments': [c.to_dict() for c in reversed(self.comments)],
            'created_at': DateTimeUtils.for_firestore(self.created_at),
            'updated_at': DateTimeUtils.for_firestore(self.updated_at) if self.updated_at else None,
        }

    def approved_only(self) -> "Work":
        """공개 응답용: 승인된 댓글만 남긴 사본을 반환합니다."""
        return replace(self, comments=[c for c in self.comments if c.is_approved])

    def search_fields(self) -> Dict[str, str]:
        return {'title': self.title, 'excerpt': self.excerpt, 'full_content': self.full_content}
