# sardia_api/api/token/routes.py

from flask import Blueprint, request, jsonify, current_app
from marshmallow import Schema, fields, ValidationError, EXCLUDE

from sardia_api.core.errors import RefreshInvalidError

token_bp = Blueprint('token_bp', __name__)


class TokenRefreshSchema(Schema):
    """POST /api/token/refresh 요청 본문"""
    class Meta:
        unknown = EXCLUDE

    token = fields.Str(required=True, error_messages={"required": "리프레시 토큰은 필수입니다."})


@token_bp.route('/refresh', methods=['POST'])
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다. 실패 시 403."""
    token_service = current_app.services['tokens']
    try:
        data = TokenRefreshSchema().load(request.get_json(silent=True) or {})
        access_token = token_service.refresh(data['token'])
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except RefreshInvalidError as e:
        return jsonify(e.to_dict()), 403
    return jsonify({"accessToken": access_token}), 200
