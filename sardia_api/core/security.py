import logging
import jwt
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Callable, Iterable, Optional
from flask import request, jsonify, g, current_app
from passlib.context import CryptContext

from sardia_api.core.errors import (
    RefreshInvalidError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
)
from sardia_api.utils.datetime_utils import DateTimeUtils

ALGORITHM = "HS256"

SESSION_TOKEN = "session"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(raw_password: str) -> str:
    return pwd_context.hash(raw_password)


def verify_password(raw_password: str, password_hash: Optional[str]) -> bool:
    """
    비밀번호를 검증합니다. 해시가 없으면(존재하지 않는 사용자) 더미 검증을 수행해
    응답 시간으로 사용자 존재 여부가 드러나지 않게 합니다.
    """
    if not password_hash:
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(raw_password, password_hash)


class TokenService:
    """
    관리자 토큰 발급/검증을 담당하는 서비스.
    - 세션 토큰(기본 8시간)과 액세스 토큰(15분)은 JWT_SECRET_KEY로 서명합니다.
    - 리프레시 토큰은 별도의 JWT_REFRESH_SECRET_KEY로 서명합니다.
    """

    def __init__(self,
                 secret_key: str,
                 refresh_secret_key: Optional[str] = None,
                 session_expires: timedelta = timedelta(hours=8),
                 access_expires: timedelta = timedelta(minutes=15),
                 refresh_expires: timedelta = timedelta(days=7),
                 algorithm: str = ALGORITHM,
                 clock: Callable[[], datetime] = DateTimeUtils.now):
        if not secret_key:
            raise ValueError("JWT_SECRET_KEY 설정이 .env 또는 환경 변수에 필요합니다.")
        self.secret_key = secret_key
        self.refresh_secret_key = refresh_secret_key
        self.session_expires = session_expires
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires
        self.algorithm = algorithm
        self.clock = clock

    @classmethod
    def from_config(cls, config) -> "TokenService":
        return cls(
            secret_key=config.get('JWT_SECRET_KEY'),
            refresh_secret_key=config.get('JWT_REFRESH_SECRET_KEY'),
            session_expires=config.get('SESSION_TOKEN_EXPIRES', timedelta(hours=8)),
            access_expires=config.get('ACCESS_TOKEN_EXPIRES', timedelta(minutes=15)),
            refresh_expires=config.get('REFRESH_TOKEN_EXPIRES', timedelta(days=7)),
            algorithm=config.get('JWT_ALGORITHM', ALGORITHM),
        )

    @property
    def refresh_enabled(self) -> bool:
        return bool(self.refresh_secret_key)

    def issue_session_token(self, admin_id: str) -> str:
        return self._encode(admin_id, SESSION_TOKEN, self.session_expires, self.secret_key)

    def issue_access_token(self, admin_id: str) -> str:
        return self._encode(admin_id, ACCESS_TOKEN, self.access_expires, self.secret_key)

    def issue_refresh_token(self, admin_id: str) -> str:
        if not self.refresh_enabled:
            raise RuntimeError("JWT_REFRESH_SECRET_KEY가 설정되지 않아 리프레시 토큰을 발급할 수 없습니다.")
        return self._encode(admin_id, REFRESH_TOKEN, self.refresh_expires, self.refresh_secret_key)

    def verify(self, token: str) -> str:
        """세션/액세스 토큰을 검증하고 관리자 ID를 반환합니다."""
        payload = self._decode(token, self.secret_key, (SESSION_TOKEN, ACCESS_TOKEN))
        return payload['sub']

    def refresh(self, refresh_token: str) -> str:
        """유효한 리프레시 토큰으로 새로운 액세스 토큰을 발급합니다."""
        if not self.refresh_enabled:
            raise RefreshInvalidError()
        try:
            payload = self._decode(refresh_token, self.refresh_secret_key, (REFRESH_TOKEN,))
        except TokenInvalidError as e:
            raise RefreshInvalidError() from e
        return self.issue_access_token(payload['sub'])

    def _encode(self, admin_id: str, token_type: str, expires: timedelta, key: str) -> str:
        issued_at = self.clock()
        payload = {
            "sub": admin_id,
            "admin": {"id": admin_id},
            "type": token_type,
            "iat": issued_at,
            "exp": issued_at + expires,
        }
        return jwt.encode(payload, key, algorithm=self.algorithm)

    def _decode(self, token: str, key: str, allowed_types: Iterable[str]) -> dict:
        if not token or not isinstance(token, str):
            raise TokenInvalidError()
        try:
            # 만료 검사는 주입된 clock 기준으로 아래에서 직접 수행합니다.
            payload = jwt.decode(
                token, key, algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "sub"]}
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError() from e

        if payload.get('type') not in allowed_types:
            raise TokenInvalidError()

        expires_at = datetime.fromtimestamp(payload['exp'], tz=timezone.utc)
        if self.clock() >= expires_at:
            raise TokenExpiredError()
        return payload


def _extract_bearer_token() -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def admin_required(f):
    """
    관리자 전용 엔드포인트를 보호하는 데코레이터.
    토큰이 없으면 TokenService를 호출하지 않고 바로 401을 반환합니다.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _extract_bearer_token()
        if token is None:
            err = UnauthorizedError()
            return jsonify(err.to_dict()), err.status_code

        token_service: TokenService = current_app.services['tokens']
        try:
            g.admin_id = token_service.verify(token)
        except TokenInvalidError as err:
            logging.warning(f"관리자 인증 실패 ({request.method} {request.path}): {err.error_code}")
            return jsonify(err.to_dict()), err.status_code

        return f(*args, **kwargs)

    return decorated_function
