# didyouquit/api/resolutions/schemas.py
from marshmallow import Schema, fields


class DeletionResponseSchema(Schema):
    """
    단일 엔티티(목표, 토픽, 댓글) 삭제 API의 응답 형식.
    count는 실제로 삭제된 문서 수입니다.
    """
    success = fields.Bool(required=True)
    count = fields.Int(required=True)
