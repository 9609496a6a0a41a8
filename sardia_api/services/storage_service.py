# sardia_api/services/storage_service.py
import mimetypes
import uuid
import logging
from typing import Optional, Tuple
from flask import Flask
from firebase_admin import storage
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from sardia_api.core.errors import BadRequestError


class StorageService:
    """
    작품 표지 이미지를 Firebase Storage에 저장/삭제/조회하는 서비스 클래스입니다.
    저장된 이미지는 '/uploads/<파일명>' 형태의 공개 경로로 노출됩니다.
    """

    def __init__(self):
        """
        클래스 인스턴스 생성 시 버킷을 None으로 초기화합니다.
        실제 버킷 객체는 init_app 메서드를 통해 주입됩니다.
        """
        self.bucket = None
        self.prefix = 'uploads'
        self.placeholder = 'placeholder'
        self.allowed_extensions = {'jpg', 'jpeg', 'png', 'gif', 'webp'}

    def init_app(self, app: Flask, bucket=None):
        """
        Flask 앱 초기화 과정에서 호출되어 Storage 버킷을 설정합니다.

        :param app: Flask 애플리케이션 객체
        :param bucket: 테스트 등에서 주입할 버킷 객체 (없으면 설정값으로 생성)
        """
        self.prefix = app.config.get('UPLOAD_PREFIX', self.prefix).strip('/')
        self.placeholder = app.config.get('PLACEHOLDER_IMAGE', self.placeholder)
        self.allowed_extensions = set(app.config.get('ALLOWED_IMAGE_EXTENSIONS', self.allowed_extensions))

        if bucket is None:
            bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
            if not bucket_name:
                raise ValueError("FIREBASE_STORAGE_BUCKET 설정이 .env 또는 설정 파일에 필요합니다.")
            bucket = storage.bucket(bucket_name)

        self.bucket = bucket
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

    def is_placeholder(self, image_url: Optional[str]) -> bool:
        return not image_url or image_url == self.placeholder

    def save_image(self, file: FileStorage) -> str:
        """
        업로드된 이미지 파일을 저장하고 공개 경로를 반환합니다.

        :param file: multipart 요청의 'image' 필드
        :return: '/uploads/image-<uuid>.<확장자>' 형태의 경로
        """
        self._require_bucket()

        filename = secure_filename(file.filename or '')
        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
        if extension not in self.allowed_extensions:
            raise BadRequestError(f"Unsupported image type: '{extension or file.filename}'")

        blob_name = f"{self.prefix}/image-{uuid.uuid4().hex}.{extension}"
        content_type = file.mimetype or mimetypes.guess_type(filename)[0] or 'application/octet-stream'

        blob = self.bucket.blob(blob_name)
        blob.upload_from_file(file.stream, content_type=content_type)
        logging.info(f"이미지 업로드 완료: {blob_name}")
        return f"/{blob_name}"

    def _blob_name_from_url(self, image_url: str) -> Optional[str]:
        # 예전 데이터에는 'uploads\\image-123.png' 같은 윈도우 경로가 남아 있을 수 있습니다.
        path = image_url.replace('\\', '/').split('?')[0].lstrip('/')
        if not path.startswith(f"{self.prefix}/"):
            return None
        return path

    def delete_image(self, image_url: Optional[str]) -> bool:
        """
        저장된 이미지를 삭제합니다. 실패해도 예외를 던지지 않고 로그만 남깁니다.

        :return: 실제로 삭제했으면 True
        """
        if self.is_placeholder(image_url):
            return False

        blob_name = self._blob_name_from_url(image_url)
        if blob_name is None:
            logging.warning(f"업로드 경로가 아닌 이미지는 삭제하지 않습니다: {image_url}")
            return False

        try:
            self._require_bucket()
            self.bucket.blob(blob_name).delete()
            logging.info(f"이미지 삭제 완료: {blob_name}")
            return True
        except Exception as e:
            logging.error(f"Storage 이미지 삭제 실패 (url: {image_url}): {e}", exc_info=True)
            return False

    def read_image(self, filename: str) -> Tuple[bytes, str]:
        """
        '/uploads/<filename>' 요청에 응답하기 위해 이미지 바이트와 MIME 타입을 반환합니다.
        """
        self._require_bucket()

        safe_name = secure_filename(filename)
        if not safe_name or safe_name != filename:
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {filename}")

        # get_blob은 메타데이터(content_type)까지 함께 불러오고, 없으면 None을 반환합니다.
        blob = self.bucket.get_blob(f"{self.prefix}/{safe_name}")
        if blob is None:
            raise FileNotFoundError(f"파일을 찾을 수 없습니다: {filename}")

        data = blob.download_as_bytes()
        content_type = blob.content_type or mimetypes.guess_type(safe_name)[0] or 'application/octet-stream'
        return data, content_type
