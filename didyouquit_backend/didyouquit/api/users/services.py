# didyouquit/api/users/services.py
import logging
from firebase_admin import firestore, auth as firebase_auth

from didyouquit.models.cascade import UserCascadeReport
from didyouquit.services.user_cascade_service import UserCascadeService


class AccountService:
    """
    회원 탈퇴를 처리하는 서비스 클래스.
    - 사용자 데이터 연쇄 삭제가 끝난 뒤 users 문서와 Firebase Auth 계정을 삭제합니다.
    - 목표/토픽 삭제에 실패한 항목이 있으면 계정을 남겨 두어 다시 시도할 수 있게 합니다.
    """
    def __init__(self, user_cascade_service: UserCascadeService, db=None):
        self.db = db or firestore.client()
        self.users_ref = self.db.collection('users')
        self.user_cascade_service = user_cascade_service

    def delete_user_account(self, user_id: str) -> UserCascadeReport:
        """
        사용자의 모든 데이터를 삭제하고 결과 리포트를 반환합니다.
        :param user_id: 탈퇴할 사용자의 ID
        """
        report = self.user_cascade_service.delete_user_data(user_id)

        if report.failed_count:
            logging.warning(
                f"일부 데이터 삭제에 실패하여 계정을 유지합니다 (user_id: {user_id}, 실패: {report.failed_count}개)"
            )
            return report

        self.users_ref.document(user_id).delete()
        try:
            firebase_auth.delete_user(user_id)
            logging.info(f"Firebase Auth 사용자 삭제 성공 (user_id: {user_id}).")
        except firebase_auth.UserNotFoundError:
            # 이미 없는 사용자이므로 오류를 발생시키지 않고 넘어갑니다.
            logging.warning(f"Firebase Auth에서 이미 삭제된 사용자입니다 (user_id: {user_id}).")
        except Exception as e:
            logging.error(f"회원 탈퇴 처리 중 Firebase Auth 사용자 삭제 실패 (user_id: {user_id}): {e}", exc_info=True)
            raise

        report.account_deleted = True
        return report
