# didyouquit/api/resolutions/routes.py
import logging
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from didyouquit.api.resolutions.schemas import DeletionResponseSchema
from didyouquit.core.exceptions import CascadeError

resolutions_bp = Blueprint('resolutions_bp', __name__)


@resolutions_bp.route('/<string:resolution_id>', methods=['DELETE'])
@jwt_required()
def delete_resolution(resolution_id: str):
    """
    내 목표를 삭제합니다. (소유자 본인만 가능)
    - 목표를 참조하는 주간 일지와 일지의 댓글까지 함께 삭제됩니다.
    """
    resolution_service = current_app.services['resolutions']
    user_id = get_jwt_identity()
    try:
        count = resolution_service.delete_resolution(resolution_id, user_id)
        return jsonify(DeletionResponseSchema().dump({"success": True, "count": count})), 200
    except ValueError as e:
        return jsonify({"error_code": "RESOLUTION_NOT_FOUND", "message": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error_code": "FORBIDDEN", "message": str(e)}), 403
    except CascadeError as e:
        logging.error(f"목표 삭제 중 오류 발생 (resolution_id: {resolution_id}): {e}", exc_info=True)
        return jsonify({
            "error_code": "RESOLUTION_DELETION_FAILED",
            "message": "목표 삭제 중 오류가 발생했습니다.",
            "stage": e.stage
        }), 500
