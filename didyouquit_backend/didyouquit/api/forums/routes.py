# didyouquit/api/forums/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from didyouquit.api.forums.schemas import CommentPathDeleteSchema
from didyouquit.api.resolutions.schemas import DeletionResponseSchema # 삭제 응답 형식은 공용으로 재사용
from didyouquit.core.exceptions import CascadeError
from didyouquit.models.comment import ContainerKind, ContainerRef

forums_bp = Blueprint('forums_bp', __name__)


def _delete_comment(container: ContainerRef, comment_id: str):
    forum_service = current_app.services['forums']
    user_id = get_jwt_identity()
    try:
        count = forum_service.delete_comment(container, comment_id, user_id)
        return jsonify(DeletionResponseSchema().dump({"success": True, "count": count})), 200
    except ValueError as e:
        return jsonify({"error_code": "COMMENT_NOT_FOUND", "message": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except CascadeError as e:
        logging.error(f"댓글 삭제 중 오류 발생 ({container.path}/comments/{comment_id}): {e}", exc_info=True)
        return jsonify({
            "error_code": "COMMENT_DELETION_FAILED",
            "message": "댓글 삭제 중 오류가 발생했습니다.",
            "stage": e.stage
        }), 500


@forums_bp.route('/forums/topics/<string:topic_id>', methods=['DELETE'])
@jwt_required()
def delete_topic(topic_id: str):
    """
    내가 작성한 포럼 토픽을 삭제합니다.
    - 토픽의 모든 댓글도 함께 삭제됩니다.
    """
    forum_service = current_app.services['forums']
    user_id = get_jwt_identity()
    try:
        count = forum_service.delete_topic(topic_id, user_id)
        return jsonify(DeletionResponseSchema().dump({"success": True, "count": count})), 200
    except ValueError as e:
        return jsonify({"error_code": "TOPIC_NOT_FOUND", "message": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except CascadeError as e:
        logging.error(f"토픽 삭제 중 오류 발생 (topic_id: {topic_id}): {e}", exc_info=True)
        return jsonify({
            "error_code": "TOPIC_DELETION_FAILED",
            "message": "토픽 삭제 중 오류가 발생했습니다.",
            "stage": e.stage
        }), 500


@forums_bp.route('/forums/topics/<string:topic_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_topic_comment(topic_id: str, comment_id: str):
    """포럼 토픽의 댓글과 그 답글을 삭제합니다."""
    return _delete_comment(ContainerRef(ContainerKind.TOPIC, topic_id), comment_id)


@forums_bp.route('/journals/<string:journal_id>/comments/<string:comment_id>', methods=['DELETE'])
@jwt_required()
def delete_journal_comment(journal_id: str, comment_id: str):
    """주간 일지의 댓글과 그 답글을 삭제합니다."""
    return _delete_comment(ContainerRef(ContainerKind.JOURNAL, journal_id), comment_id)


@forums_bp.route('/comments', methods=['DELETE'])
@jwt_required()
def delete_comment_by_path():
    """
    부모 문서 경로로 댓글을 삭제합니다.
    - 요청 본문: {"parent_path": "forum_topics/123", "comment_id": "abc"}
    """
    data = CommentPathDeleteSchema().load(request.get_json() or {})
    try:
        container = ContainerRef.from_path(data['parent_path'])
    except ValueError as e:
        return jsonify({"error_code": "INVALID_PARENT_PATH", "message": str(e)}), 400
    return _delete_comment(container, data['comment_id'])
