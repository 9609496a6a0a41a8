# sardia_api/api/admin/schemas.py
from marshmallow import Schema, fields, validate, ValidationError, EXCLUDE

from sardia_api.models.admin import RESERVED_ID_PATTERN


def not_reserved_id(value: str):
    if RESERVED_ID_PATTERN.match(value):
        raise ValidationError("'__'로 시작하고 끝나는 이름은 사용할 수 없습니다.")


class AdminRegisterSchema(Schema):
    """
    POST /api/admin/register
    username은 Firestore 문서 ID로도 쓰이므로 허용 문자를 제한합니다.
    """
    class Meta:
        unknown = EXCLUDE

    username = fields.Str(required=True, validate=[
        validate.Length(min=3, max=50),
        validate.Regexp(r'^[A-Za-z0-9_.\-]+$', error="영문, 숫자, '_', '.', '-'만 사용할 수 있습니다."),
        not_reserved_id,
    ])
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=8, max=128))


class AdminLoginSchema(Schema):
    """POST /api/admin/login 요청 본문. 형식 검사는 최소한으로만 수행합니다."""
    class Meta:
        unknown = EXCLUDE

    username = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=1))
