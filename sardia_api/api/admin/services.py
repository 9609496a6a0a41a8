# sardia_api/api/admin/services.py
import uuid
import logging
from dataclasses import asdict
from typing import Dict, Optional
from google.api_core import exceptions as google_exceptions

from sardia_api.core.errors import BadRequestError, ConflictError, InvalidCredentialsError
from sardia_api.core.security import TokenService, hash_password, verify_password
from sardia_api.models.admin import Admin, is_valid_username
from sardia_api.utils.datetime_utils import DateTimeUtils


class AdminService:
    """
    관리자 계정(Credential Store)과 로그인 처리를 담당하는 서비스.
    비밀번호는 평문으로 저장하거나 비교하지 않습니다.
    """
    def __init__(self, db, token_service: TokenService):
        self.db = db
        self.admins_ref = self.db.collection('admins')
        self.token_service = token_service

    def register(self, username: str, raw_password: str) -> Admin:
        """
        새 관리자를 생성합니다.
        username을 문서 ID로 사용하는 create()는 문서가 이미 있으면 실패하므로
        중복 검사가 원자적으로 이루어집니다.
        """
        if not is_valid_username(username):
            raise BadRequestError("Invalid username")
        new_admin = Admin(
            admin_id=str(uuid.uuid4()),
            username=username,
            password_hash=hash_password(raw_password),
        )
        try:
            self.admins_ref.document(username).create(DateTimeUtils.for_firestore(asdict(new_admin)))
        except google_exceptions.AlreadyExists:
            logging.warning(f"관리자 생성 실패: 이미 존재하는 사용자명 ({username})")
            raise ConflictError()
        logging.info(f"관리자 생성 완료 (admin_id: {new_admin.admin_id})")
        return new_admin

    def find_by_username(self, username: str) -> Optional[Admin]:
        doc = self.admins_ref.document(username).get()
        if not doc.exists:
            return None
        return Admin(**DateTimeUtils.from_firestore(doc.to_dict()))

    def authenticate(self, username: str, raw_password: str) -> Admin:
        """
        사용자명과 비밀번호를 확인합니다.
        존재하지 않는 사용자와 잘못된 비밀번호는 같은 오류로 응답합니다.
        """
        # 문서 ID로 쓸 수 없는 이름은 조회하지 않고 없는 사용자로 취급합니다.
        admin = self.find_by_username(username) if is_valid_username(username) else None
        if admin is None:
            verify_password(raw_password, None)
            raise InvalidCredentialsError()
        if not verify_password(raw_password, admin.password_hash):
            raise InvalidCredentialsError()
        return admin

    def login(self, username: str, raw_password: str) -> Dict[str, str]:
        """로그인에 성공하면 세션 토큰(및 설정된 경우 액세스/리프레시 토큰)을 발급합니다."""
        admin = self.authenticate(username, raw_password)
        tokens = {"token": self.token_service.issue_session_token(admin.admin_id)}
        if self.token_service.refresh_enabled:
            tokens["accessToken"] = self.token_service.issue_access_token(admin.admin_id)
            tokens["refreshToken"] = self.token_service.issue_refresh_token(admin.admin_id)
        logging.info(f"관리자 로그인 성공 (admin_id: {admin.admin_id})")
        return tokens
