# didyouquit/api/forums/schemas.py
from marshmallow import Schema, fields, validate


class CommentPathDeleteSchema(Schema):
    """
    DELETE /api/comments
    부모 문서 경로('forum_topics/123', 'journal_entries/456')와 댓글 ID로 삭제를 요청할 때의 형식.
    """
    parent_path = fields.Str(required=True, validate=validate.Length(min=3),
                             error_messages={"required": "parent_path는 필수 항목입니다."})
    comment_id = fields.Str(required=True, validate=validate.Length(min=1),
                            error_messages={"required": "comment_id는 필수 항목입니다."})
