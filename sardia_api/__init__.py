# sardia_api/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException
import firebase_admin
from firebase_admin import credentials, firestore

# - 설정
from sardia_api.core.config import config_by_name
from sardia_api.core.errors import ApiError
from sardia_api.core.security import TokenService

# - API 블루프린트
from sardia_api.api.works.routes import works_bp
from sardia_api.api.admin.routes import admin_bp
from sardia_api.api.token.routes import token_bp
from sardia_api.api.uploads.routes import uploads_bp

# - 서비스 모듈
from sardia_api.services.storage_service import StorageService
from sardia_api.api.works.services import WorkService
from sardia_api.api.admin.services import AdminService


def _init_firebase(app: Flask):
    """Firebase Admin SDK를 한 번만 초기화합니다."""
    if firebase_admin._apps:
        return
    cred_path = app.config.get('FIREBASE_CREDENTIALS_PATH')
    if not cred_path or not os.path.exists(cred_path):
        raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
    cred = credentials.Certificate(cred_path)
    firebase_admin.initialize_app(cred, {
        'storageBucket': app.config.get('FIREBASE_STORAGE_BUCKET')
    })


def create_app(config_name: str = None, db=None, bucket=None, config_overrides: dict = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param db: Firestore 클라이언트 (없으면 Firebase 설정으로 생성)
    :param bucket: Storage 버킷 (없으면 FIREBASE_STORAGE_BUCKET으로 생성)
    :param config_overrides: 설정 클래스 위에 덮어쓸 값
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if config_overrides:
        app.config.update(config_overrides)
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 외부 서비스 초기화
    # =====================================================================================
    if db is None or bucket is None:
        _init_firebase(app)
    if db is None:
        db = firestore.client()

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    try:
        storage_instance = StorageService()
        storage_instance.init_app(app, bucket=bucket)
        app.services['storage'] = storage_instance
        logging.info("Storage service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    # 서명 키가 없으면 여기서 ValueError로 기동을 중단합니다.
    app.services['tokens'] = TokenService.from_config(app.config)

    app.services['works'] = WorkService(
        db=db,
        storage_service=app.services['storage'],
        placeholder_image=app.config['PLACEHOLDER_IMAGE'],
        max_page_limit=app.config['MAX_PAGE_LIMIT'],
        default_page_limit=app.config['DEFAULT_PAGE_LIMIT'],
    )
    app.services['admins'] = AdminService(db=db, token_service=app.services['tokens'])

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    @app.route('/api', methods=['GET'])
    def index():
        return jsonify({"message": "Welcome to the Sardia API!"}), 200

    app.register_blueprint(works_bp, url_prefix='/api/works')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(token_bp, url_prefix='/api/token')
    # StorageService가 돌려주는 '/<UPLOAD_PREFIX>/<파일명>' 경로와 같은 곳에 등록합니다.
    app.register_blueprint(uploads_bp, url_prefix=f"/{app.config['UPLOAD_PREFIX'].strip('/')}")

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(ApiError)
    def handle_api_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(err):
        # 404(없는 경로), 405, 413(업로드 용량 초과) 등도 JSON으로 응답합니다.
        error_code = (err.name or "HTTP_ERROR").upper().replace(" ", "_")
        return jsonify({"error_code": error_code, "message": err.description}), err.code

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "Server error"}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
