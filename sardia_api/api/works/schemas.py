# sardia_api/api/works/schemas.py
from marshmallow import Schema, fields, validate, pre_load, ValidationError, EXCLUDE

from sardia_api.models.work import CommentStatus


def not_blank(value: str):
    if not value or not value.strip():
        raise ValidationError("공백만으로 이루어질 수 없습니다.")


# --- API 요청 스키마 ---

class WorkCreateSchema(Schema):
    """POST /api/works 요청(multipart 폼 필드)의 유효성을 검사합니다."""
    class Meta:
        unknown = EXCLUDE

    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    excerpt = fields.Str(required=True, validate=[not_blank, validate.Length(max=2000)])
    full_content = fields.Str(required=True, data_key='fullContent', validate=not_blank)

    @pre_load
    def strip_title(self, data, **kwargs):
        if isinstance(data.get('title'), str):
            data = {**data, 'title': data['title'].strip()}
        return data


class WorkUpdateSchema(WorkCreateSchema):
    """
    PUT /api/works/{id} 요청의 유효성을 검사합니다.
    모든 필드는 선택이며, 전달된 필드만 수정됩니다.
    """
    title = fields.Str(validate=validate.Length(min=1, max=200))
    excerpt = fields.Str(validate=[not_blank, validate.Length(max=2000)])
    full_content = fields.Str(data_key='fullContent', validate=not_blank)


class CommentCreateSchema(Schema):
    """
    POST /api/works/{id}/comments
    status 등 허용되지 않은 필드는 무시합니다. (새 댓글은 항상 pending)
    """
    class Meta:
        unknown = EXCLUDE

    author = fields.Str(required=True, validate=[not_blank, validate.Length(max=100)])
    text = fields.Str(required=True, validate=[not_blank, validate.Length(max=2000, error="댓글은 2000자 이하여야 합니다.")])


# --- API 응답 스키마 ---

class CommentResponseSchema(Schema):
    id = fields.Str(attribute='comment_id')
    author = fields.Str()
    text = fields.Str()
    status = fields.Enum(CommentStatus, by_value=True)
    created_at = fields.DateTime(data_key='createdAt')


class WorkResponseSchema(Schema):
    """작품 정보 응답을 위한 최종 JSON 형식을 정의합니다."""
    id = fields.Str(attribute='work_id')
    title = fields.Str()
    excerpt = fields.Str()
    full_content = fields.Str(data_key='fullContent')
    image_url = fields.Str(data_key='imageUrl')
    likes = fields.Int()
    comments = fields.List(fields.Nested(CommentResponseSchema))
    created_at = fields.DateTime(data_key='createdAt')
    updated_at = fields.DateTime(data_key='updatedAt', allow_none=True)


class WorkPageResponseSchema(Schema):
    works = fields.List(fields.Nested(WorkResponseSchema))
    total = fields.Int()
    page = fields.Int()
    pages = fields.Int()


class PendingCommentResponseSchema(Schema):
    work_id = fields.Str(data_key='workId')
    work_title = fields.Str(data_key='workTitle')
    comment = fields.Nested(CommentResponseSchema)
