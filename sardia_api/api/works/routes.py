# sardia_api/api/works/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError

from sardia_api.core.errors import BadRequestError, WorkNotFoundError
from sardia_api.core.security import admin_required
from sardia_api.api.works.schemas import (
    WorkCreateSchema,
    WorkUpdateSchema,
    WorkResponseSchema,
    WorkPageResponseSchema,
    CommentCreateSchema,
    CommentResponseSchema,
)

works_bp = Blueprint('works_bp', __name__)


def _request_fields() -> dict:
    """multipart 폼과 JSON 본문을 모두 지원합니다. (수정 요청은 JSON으로 올 수 있음)"""
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}


def _uploaded_image():
    """'image' 필드가 없거나 비어 있으면 None을 반환합니다."""
    image = request.files.get('image')
    if image is None or not image.filename:
        return None
    return image


# --- PUBLIC ROUTES ---

@works_bp.route('/', methods=['GET'], strict_slashes=False)
def list_works():
    """작품 목록을 최신순으로 페이지네이션하여 조회합니다."""
    work_service = current_app.services['works']
    result = work_service.list_works(request.args.get('page'), request.args.get('limit'))
    return jsonify(WorkPageResponseSchema().dump(result)), 200


@works_bp.route('/search', methods=['GET'])
def search_works():
    """제목/발췌/본문 전문 검색. q가 비어 있으면 400을 반환합니다."""
    work_service = current_app.services['works']
    try:
        result = work_service.search_works(
            request.args.get('q'), request.args.get('page'), request.args.get('limit')
        )
    except BadRequestError as e:
        return jsonify(e.to_dict()), 400
    return jsonify(WorkPageResponseSchema().dump(result)), 200


@works_bp.route('/<string:work_id>', methods=['GET'])
def get_work(work_id: str):
    work_service = current_app.services['works']
    try:
        work = work_service.get_work(work_id)
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404
    return jsonify(WorkResponseSchema().dump(work)), 200


@works_bp.route('/<string:work_id>/like', methods=['POST'])
def like_work(work_id: str):
    work_service = current_app.services['works']
    try:
        likes = work_service.increment_likes(work_id)
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404
    return jsonify({"likes": likes}), 200


@works_bp.route('/<string:work_id>/comments', methods=['POST'])
def create_comment(work_id: str):
    """
    작품에 새 댓글을 작성합니다.
    - 댓글은 관리자가 승인하기 전까지 공개 응답에 노출되지 않습니다.
    """
    work_service = current_app.services['works']
    try:
        data = CommentCreateSchema().load(request.get_json(silent=True) or {})
        new_comment = work_service.add_comment(work_id, data['author'], data['text'])
        return jsonify(CommentResponseSchema().dump(new_comment)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404


# --- PROTECTED ADMIN ROUTES ---

@works_bp.route('/', methods=['POST'], strict_slashes=False)
@admin_required
def create_work():
    """
    새 작품을 생성합니다. (multipart: title, excerpt, fullContent, image[선택])
    - 이미지가 없으면 플레이스홀더가 사용됩니다.
    """
    work_service = current_app.services['works']
    storage_service = current_app.services['storage']
    try:
        data = WorkCreateSchema().load(_request_fields())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    image = _uploaded_image()
    if image is None and current_app.config.get('REQUIRE_WORK_IMAGE'):
        return jsonify(BadRequestError("Image file is required.").to_dict()), 400

    try:
        image_url = storage_service.save_image(image) if image else None
    except BadRequestError as e:
        return jsonify(e.to_dict()), 400

    try:
        new_work = work_service.create_work(data['title'], data['excerpt'], data['full_content'], image_url)
    except Exception:
        # 작품이 저장되지 않았다면 방금 올린 이미지도 정리합니다.
        storage_service.delete_image(image_url)
        raise
    return jsonify(WorkResponseSchema().dump(new_work)), 201


@works_bp.route('/<string:work_id>', methods=['PUT'])
@admin_required
def update_work(work_id: str):
    """작품을 부분 수정합니다. 새 이미지가 오면 이전 이미지를 교체합니다."""
    work_service = current_app.services['works']
    storage_service = current_app.services['storage']
    try:
        data = WorkUpdateSchema().load(_request_fields())
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400

    image = _uploaded_image()
    try:
        image_url = storage_service.save_image(image) if image else None
    except BadRequestError as e:
        return jsonify(e.to_dict()), 400

    try:
        updated_work = work_service.update_work(work_id, data, image_url)
    except WorkNotFoundError as e:
        storage_service.delete_image(image_url)
        return jsonify(e.to_dict()), 404
    except Exception:
        # 수정이 저장되지 않았다면 새로 올린 이미지도 정리합니다.
        storage_service.delete_image(image_url)
        raise
    return jsonify(WorkResponseSchema().dump(updated_work)), 200


@works_bp.route('/<string:work_id>/image', methods=['DELETE'])
@admin_required
def delete_work_image(work_id: str):
    work_service = current_app.services['works']
    try:
        work = work_service.delete_work_image(work_id)
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404
    return jsonify(WorkResponseSchema().dump(work)), 200


@works_bp.route('/<string:work_id>', methods=['DELETE'])
@admin_required
def delete_work(work_id: str):
    work_service = current_app.services['works']
    try:
        work_service.delete_work(work_id)
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404
    logging.info(f"관리자 작품 삭제 요청 처리 완료 (work_id: {work_id})")
    return jsonify({"message": "Work deleted successfully"}), 200
