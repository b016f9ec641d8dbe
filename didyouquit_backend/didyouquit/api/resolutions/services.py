# didyouquit/api/resolutions/services.py
import logging
from firebase_admin import firestore

from didyouquit.services.cascade_service import CascadeService


class ResolutionService:
    """
    목표(resolution) 관련 요청을 처리하는 서비스 클래스.
    - 소유권을 확인한 뒤 연쇄 삭제는 CascadeService에 위임합니다.
    """
    def __init__(self, cascade_service: CascadeService, db=None):
        self.db = db or firestore.client()
        self.resolutions_ref = self.db.collection('resolutions')
        self.cascade_service = cascade_service

    def delete_resolution(self, resolution_id: str, user_id: str) -> int:
        """
        목표와 연결된 일지, 댓글을 모두 삭제하고 삭제된 문서 수를 반환합니다.
        :raises ValueError: 목표가 존재하지 않는 경우
        :raises PermissionError: 요청자가 목표의 소유자가 아닌 경우
        """
        doc = self.resolutions_ref.document(resolution_id).get()
        if not doc.exists:
            raise ValueError("목표를 찾을 수 없습니다.")

        data = doc.to_dict() or {}
        owner_id = data.get('uid') or data.get('userId')
        if owner_id != user_id:
            raise PermissionError("이 목표를 삭제할 권한이 없습니다.")

        logging.info(f"목표 삭제 요청 (resolution_id: {resolution_id}, user_id: {user_id})")
        return self.cascade_service.delete_resolution(resolution_id)
