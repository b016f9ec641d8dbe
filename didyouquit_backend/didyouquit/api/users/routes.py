# didyouquit/api/users/routes.py
import logging
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from didyouquit.api.users.schemas import UserDeletionResponseSchema
from didyouquit.core.exceptions import UserCascadeError

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['DELETE'])
@jwt_required()
def delete_my_account():
    """
    현재 로그인된 사용자 본인의 계정과 모든 데이터를 영구적으로 삭제합니다.
    - 일부 항목 삭제에 실패하면 status가 'partially_completed'로 반환되고 계정은 유지됩니다.
    """
    account_service = current_app.services['accounts']
    user_id = get_jwt_identity()
    try:
        report = account_service.delete_user_account(user_id)
        return jsonify(UserDeletionResponseSchema().dump(report)), 200
    except UserCascadeError as e:
        logging.error(f"회원 탈퇴 처리 중 오류 발생 (user_id: {user_id}, stage: {e.stage}): {e}", exc_info=True)
        return jsonify({
            "error_code": "ACCOUNT_DELETION_FAILED",
            "message": "회원 탈퇴 처리 중 서버 오류가 발생했습니다.",
            "stage": e.stage,
            "removed": e.report.removed
        }), 500
