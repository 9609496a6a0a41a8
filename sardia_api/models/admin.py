import re
from dataclasses import dataclass, field
from datetime import datetime

from sardia_api.utils.datetime_utils import DateTimeUtils

USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]{3,50}$')
# Firestore는 '__.*__' 형태의 문서 ID를 예약어로 취급해 거부합니다.
RESERVED_ID_PATTERN = re.compile(r'^__.*__$')


def is_valid_username(username: str) -> bool:
    """username을 그대로 문서 ID로 쓸 수 있는지 검사합니다."""
    return bool(USERNAME_PATTERN.match(username)) and not RESERVED_ID_PATTERN.match(username)


@dataclass
class Admin:
    """
    Firestore 'admins' 컬렉션의 문서 구조.
    문서 ID는 username이므로 같은 이름의 관리자는 두 번 생성될 수 없습니다.
    """
    admin_id: str
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=DateTimeUtils.now)
