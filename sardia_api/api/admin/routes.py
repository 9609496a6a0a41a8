# sardia_api/api/admin/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from marshmallow import ValidationError

from sardia_api.core.errors import (
    CommentNotFoundError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    WorkNotFoundError,
)
from sardia_api.core.security import admin_required
from sardia_api.api.admin.schemas import AdminRegisterSchema, AdminLoginSchema
from sardia_api.api.works.schemas import WorkResponseSchema, PendingCommentResponseSchema

admin_bp = Blueprint('admin_bp', __name__)


# --- 인증 엔드포인트 ---

@admin_bp.route('/register', methods=['POST'])
def register():
    """관리자 계정을 생성합니다. (최초 1회 사용, ALLOW_ADMIN_REGISTRATION으로 닫을 수 있음)"""
    if not current_app.config.get('ALLOW_ADMIN_REGISTRATION', True):
        err = ForbiddenError("Admin registration is disabled")
        return jsonify(err.to_dict()), err.status_code

    admin_service = current_app.services['admins']
    try:
        data = AdminRegisterSchema().load(request.get_json(silent=True) or {})
        admin = admin_service.register(data['username'], data['password'])
        return jsonify({"message": "Admin user created successfully", "id": admin.admin_id}), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ConflictError as e:
        return jsonify(e.to_dict()), 400


@admin_bp.route('/login', methods=['POST'])
def login():
    """
    관리자 로그인.
    - 없는 사용자와 잘못된 비밀번호 모두 400 'Invalid credentials'로 응답합니다.
    """
    admin_service = current_app.services['admins']
    try:
        data = AdminLoginSchema().load(request.get_json(silent=True) or {})
        tokens = admin_service.login(data['username'], data['password'])
        return jsonify(tokens), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except InvalidCredentialsError as e:
        logging.warning("관리자 로그인 실패: 잘못된 자격 증명")
        return jsonify(e.to_dict()), 400


# --- 작품/댓글 관리 엔드포인트 ---

@admin_bp.route('/works/comments/pending', methods=['GET'])
@admin_required
def list_pending_comments():
    """모든 작품의 검토 대기 댓글 목록을 조회합니다."""
    work_service = current_app.services['works']
    pending = work_service.list_pending_comments()
    return jsonify({"pending": PendingCommentResponseSchema(many=True).dump(pending)}), 200


@admin_bp.route('/works/<string:work_id>', methods=['GET'])
@admin_required
def get_work_raw(work_id: str):
    """[수정 폼용] 모든 상태의 댓글을 포함한 작품 정보를 조회합니다."""
    work_service = current_app.services['works']
    try:
        work = work_service.get_work_raw(work_id)
    except WorkNotFoundError as e:
        return jsonify(e.to_dict()), 404
    return jsonify(WorkResponseSchema().dump(work)), 200


@admin_bp.route('/works/<string:work_id>/comments/<string:comment_id>/approve', methods=['PUT'])
@admin_required
def approve_comment(work_id: str, comment_id: str):
    work_service = current_app.services['works']
    try:
        work_service.approve_comment(work_id, comment_id)
    except (WorkNotFoundError, CommentNotFoundError) as e:
        return jsonify(e.to_dict()), 404
    return jsonify({"message": "Comment approved"}), 200


@admin_bp.route('/works/<string:work_id>/comments/<string:comment_id>/reject', methods=['PUT'])
@admin_required
def reject_comment(work_id: str, comment_id: str):
    work_service = current_app.services['works']
    try:
        work_service.reject_comment(work_id, comment_id)
    except (WorkNotFoundError, CommentNotFoundError) as e:
        return jsonify(e.to_dict()), 404
    return jsonify({"message": "Comment rejected"}), 200


@admin_bp.route('/works/<string:work_id>/comments/<string:comment_id>', methods=['DELETE'])
@admin_required
def delete_comment(work_id: str, comment_id: str):
    work_service = current_app.services['works']
    try:
        work_service.delete_comment(work_id, comment_id)
    except (WorkNotFoundError, CommentNotFoundError) as e:
        return jsonify(e.to_dict()), 404
    return jsonify({"message": "Comment deleted"}), 200
