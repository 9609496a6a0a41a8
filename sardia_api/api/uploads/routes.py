# sardia_api/api/uploads/routes.py

import logging
from flask import Blueprint, Response, jsonify, current_app

# 업로드된 작품 이미지를 '/uploads/<파일명>' 경로로 제공하는 블루프린트입니다.
uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route('/<path:filename>', methods=['GET'])
def serve_image(filename: str):
    storage_service = current_app.services['storage']
    try:
        data, content_type = storage_service.read_image(filename)
    except FileNotFoundError as e:
        logging.warning(f"요청한 이미지가 없습니다: {filename}")
        return jsonify({"error_code": "FILE_NOT_FOUND", "message": str(e)}), 404

    response = Response(data, mimetype=content_type)
    response.headers['Cache-Control'] = 'public, max-age=86400'
    return response
