# didyouquit/api/forums/services.py
import logging
from typing import Any, Dict, Optional
from firebase_admin import firestore
from google.api_core.exceptions import NotFound

from didyouquit.models.comment import Comment, ContainerKind, ContainerRef
from didyouquit.services.cascade_service import CascadeService


class ForumService:
    """
    포럼 토픽과 댓글(토픽/주간 일지 공용) 삭제 요청을 처리하는 서비스 클래스.
    - 권한 확인과 commentCount 갱신은 여기서, 실제 연쇄 삭제는 CascadeService가 담당합니다.
    """
    def __init__(self, cascade_service: CascadeService, db=None):
        self.db = db or firestore.client()
        self.cascade_service = cascade_service

    @staticmethod
    def _container_owner(container: ContainerRef, data: Dict[str, Any]) -> Optional[str]:
        """컨테이너 종류별 소유자 필드에서 소유자 uid를 꺼냅니다."""
        if container.kind is ContainerKind.TOPIC:
            return (data.get('author') or {}).get('uid')
        return data.get('uid') or data.get('userId')

    def delete_topic(self, topic_id: str, user_id: str) -> int:
        """
        포럼 토픽과 그 댓글 전체를 삭제하고 삭제된 문서 수를 반환합니다.
        :raises ValueError: 토픽이 없는 경우
        :raises PermissionError: 토픽 작성자가 아닌 경우
        """
        container = ContainerRef(ContainerKind.TOPIC, topic_id)
        doc = container.document(self.db).get()
        if not doc.exists:
            raise ValueError("토픽을 찾을 수 없습니다.")
        if self._container_owner(container, doc.to_dict() or {}) != user_id:
            raise PermissionError("토픽을 삭제할 권한이 없습니다.")

        return self.cascade_service.delete_container(container)

    def delete_comment(self, container: ContainerRef, comment_id: str, user_id: str) -> int:
        """
        댓글과 그 답글 전체를 삭제하고, 컨테이너의 commentCount를 삭제된 개수만큼 감소시킵니다.
        - 댓글 작성자 또는 컨테이너(토픽/일지) 소유자만 삭제할 수 있습니다.
        :raises ValueError: 댓글이 없는 경우
        :raises PermissionError: 삭제 권한이 없는 경우
        """
        comment_doc = container.comments(self.db).document(comment_id).get()
        if not comment_doc.exists:
            raise ValueError("삭제할 댓글이 없습니다.")
        comment = Comment.from_snapshot(comment_doc)

        container_ref = container.document(self.db)
        container_doc = container_ref.get()
        owner_id = self._container_owner(container, container_doc.to_dict() or {}) if container_doc.exists else None
        if user_id not in (comment.author_uid, owner_id):
            raise PermissionError("댓글을 삭제할 권한이 없습니다.")

        count = self.cascade_service.delete_comment(container, comment_id)

        if count and container_doc.exists:
            try:
                container_ref.update({'commentCount': firestore.Increment(-count)})
            except NotFound:
                logging.warning(f"컨테이너가 삭제되어 commentCount 갱신을 건너뜁니다 ({container.path}, -{count})")
        return count
