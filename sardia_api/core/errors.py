# sardia_api/core/errors.py
"""
도메인 예외 정의

각 예외는 HTTP 상태 코드와 error_code를 함께 가지고 있어
라우트 또는 create_app의 전역 에러 핸들러가 그대로 JSON 응답으로 변환합니다.
"""


class ApiError(Exception):
    """API 계층까지 전달되는 모든 도메인 예외의 기반 클래스."""
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"
    default_message = "Server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"error_code": self.error_code, "message": self.message}


class BadRequestError(ApiError):
    status_code = 400
    error_code = "BAD_REQUEST"
    default_message = "Bad request"


class ConflictError(ApiError):
    # 기존 관리자 클라이언트와의 호환을 위해 409가 아닌 400을 사용합니다.
    status_code = 400
    error_code = "ADMIN_ALREADY_EXISTS"
    default_message = "Admin user already exists"


class InvalidCredentialsError(ApiError):
    status_code = 400
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class NotFoundError(ApiError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class WorkNotFoundError(NotFoundError):
    error_code = "WORK_NOT_FOUND"
    default_message = "Work not found"


class CommentNotFoundError(NotFoundError):
    error_code = "COMMENT_NOT_FOUND"
    default_message = "Comment not found"


class UnauthorizedError(ApiError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "No token, authorization denied"


class TokenInvalidError(UnauthorizedError):
    error_code = "INVALID_TOKEN"
    default_message = "Token is not valid"


class TokenExpiredError(TokenInvalidError):
    error_code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class ForbiddenError(ApiError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Forbidden"


class RefreshInvalidError(ForbiddenError):
    error_code = "INVALID_REFRESH_TOKEN"
    default_message = "Refresh token is not valid"
