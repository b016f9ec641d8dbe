# didyouquit/models/comment.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from didyouquit.utils.datetime_utils import DateTimeUtils

COMMENTS_SUBCOLLECTION = 'comments'


class ContainerKind(Enum):
    """댓글 서브컬렉션을 소유하는 문서의 종류. 값은 최상위 컬렉션 이름입니다."""
    TOPIC = "forum_topics"
    JOURNAL = "journal_entries"


@dataclass(frozen=True)
class ContainerRef:
    """
    댓글 컨테이너(포럼 토픽 또는 주간 일지)를 가리키는 태그된 참조.
    문서 경로 문자열을 그때그때 쪼개는 대신 조회 시점에 이 값을 만들어 전달합니다.
    """
    kind: ContainerKind
    container_id: str

    @property
    def path(self) -> str:
        return f"{self.kind.value}/{self.container_id}"

    def document(self, db):
        return db.collection(self.kind.value).document(self.container_id)

    def comments(self, db):
        return self.document(db).collection(COMMENTS_SUBCOLLECTION)

    @classmethod
    def from_path(cls, path: str) -> "ContainerRef":
        """'forum_topics/123' 형식의 문서 경로를 ContainerRef로 변환합니다."""
        parts = [p for p in (path or '').strip('/').split('/') if p]
        if len(parts) != 2:
            raise ValueError(f"잘못된 컨테이너 경로입니다: {path}")
        try:
            kind = ContainerKind(parts[0])
        except ValueError:
            raise ValueError(f"댓글을 가질 수 없는 컬렉션입니다: {parts[0]}")
        return cls(kind=kind, container_id=parts[1])


@dataclass(frozen=True)
class CommentRef:
    """특정 컨테이너 안의 댓글 하나를 가리키는 참조."""
    container: ContainerRef
    comment_id: str

    @classmethod
    def from_snapshot(cls, snapshot) -> Optional["CommentRef"]:
        """
        컬렉션 그룹 조회로 읽은 댓글 스냅샷에서 부모 컨테이너를 판별합니다.
        - 경로가 '<컬렉션>/<id>/comments/<id>' 형태가 아니거나
          알 수 없는 컬렉션 아래의 댓글이면 None을 반환합니다.
        """
        parent_doc = snapshot.reference.parent.parent
        if parent_doc is None:
            return None
        try:
            kind = ContainerKind(parent_doc.parent.id)
        except ValueError:
            return None
        return cls(container=ContainerRef(kind=kind, container_id=parent_doc.id), comment_id=snapshot.id)


@dataclass
class Comment:
    """
    'forum_topics/{id}/comments', 'journal_entries/{id}/comments' 서브컬렉션의 문서 구조.
    """
    comment_id: str
    author: Dict[str, Any]  # {'uid', 'username', 'photoURL'}
    content: str = ""
    parent_id: Optional[str] = None  # None이면 최상위 댓글
    created_at: Optional[datetime] = None
    author_uid_legacy: Optional[str] = None  # 시뮬레이션 데이터의 'authorUid' 필드

    @property
    def author_uid(self) -> Optional[str]:
        return (self.author or {}).get('uid') or self.author_uid_legacy

    @classmethod
    def from_snapshot(cls, snapshot) -> "Comment":
        data = snapshot.to_dict() or {}
        return cls(
            comment_id=snapshot.id,
            author=data.get('author') or {},
            content=data.get('content', ''),
            parent_id=data.get('parentId'),
            created_at=DateTimeUtils.from_firestore(data.get('createdAt')),
            author_uid_legacy=data.get('authorUid'),
        )
