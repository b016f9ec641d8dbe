# didyouquit/api/users/schemas.py
from marshmallow import Schema, fields

from didyouquit.models.cascade import Completed


class UserDeletionResponseSchema(Schema):
    """
    DELETE /api/users/me
    회원 탈퇴 결과 응답 형식. 실제로 삭제된 것과 실패한 것을 그대로 보여줍니다.
    - status: 'completed' 또는 'partially_completed'
    """
    status = fields.Str(required=True)
    user_id = fields.Str(required=True)
    removed = fields.Int(required=True)
    resolutions_deleted = fields.List(fields.Str())
    failed_resolutions = fields.Dict(keys=fields.Str(), values=fields.Str())
    notifications_deleted = fields.Int()
    topics_deleted = fields.List(fields.Str())
    failed_topics = fields.Dict(keys=fields.Str(), values=fields.Str())
    connections_removed = fields.Int()
    ghost_comments = fields.Method("dump_ghost_comments")
    account_deleted = fields.Bool()
    started_at = fields.DateTime()
    finished_at = fields.DateTime()

    def dump_ghost_comments(self, report):
        result = report.ghost_comments
        if result is None:
            return None
        if isinstance(result, Completed):
            return {"status": "completed", "removed": result.removed}
        return {"status": "partially_completed", "removed": result.removed, "reason": result.reason}
