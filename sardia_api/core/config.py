# sardia_api/core/config.py

import os  # 환경 변수를 읽기 위해 사용합니다.
from datetime import timedelta


def _env_flag(name: str, default: bool) -> bool:
    """'true', '1', 'yes' 형태의 환경 변수를 bool 값으로 변환합니다."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # 세션/액세스 토큰 서명 키. 코드에 하드코딩하지 않고 반드시 .env 또는 환경 변수로 주입합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    # 리프레시 토큰 전용 서명 키. 설정되지 않으면 리프레시 토큰 기능이 비활성화됩니다.
    JWT_REFRESH_SECRET_KEY = os.getenv('JWT_REFRESH_SECRET_KEY')
    JWT_ALGORITHM = 'HS256'

    SESSION_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('SESSION_TOKEN_HOURS', 8)))
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
    REFRESH_TOKEN_EXPIRES = timedelta(days=7)

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # 이미지가 없는 작품의 image_url 값
    PLACEHOLDER_IMAGE = 'placeholder'
    UPLOAD_PREFIX = 'uploads'
    ALLOWED_IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    DEFAULT_PAGE_LIMIT = 10
    MAX_PAGE_LIMIT = 100

    # True이면 이미지 없이 작품을 생성할 수 없습니다.
    REQUIRE_WORK_IMAGE = _env_flag('REQUIRE_WORK_IMAGE', False)
    # 최초 관리자 생성 후 False로 바꿔 회원가입 엔드포인트를 닫을 수 있습니다.
    ALLOW_ADMIN_REGISTRATION = _env_flag('ALLOW_ADMIN_REGISTRATION', True)


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
