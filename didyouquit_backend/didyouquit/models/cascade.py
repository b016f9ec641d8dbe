# didyouquit/models/cascade.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union


@dataclass(frozen=True)
class Completed:
    """정리 작업이 끝까지 수행됨."""
    removed: int = 0


@dataclass(frozen=True)
class PartiallyCompleted:
    """정리 작업이 일부만 수행됨. reason에 중단 사유를 담습니다."""
    reason: str
    removed: int = 0


CleanupResult = Union[Completed, PartiallyCompleted]


@dataclass
class UserCascadeReport:
    """
    회원 탈퇴 연쇄 삭제 결과.
    실제로 삭제된 것과 실패한 것을 구분해서 기록합니다.
    """
    user_id: str
    resolutions_deleted: List[str] = field(default_factory=list)
    failed_resolutions: Dict[str, str] = field(default_factory=dict)  # resolution_id -> 실패 사유
    notifications_deleted: int = 0
    topics_deleted: List[str] = field(default_factory=list)
    failed_topics: Dict[str, str] = field(default_factory=dict)       # topic_id -> 실패 사유
    connections_removed: int = 0
    ghost_comments: Optional[CleanupResult] = None
    removed: int = 0  # 삭제된 문서 총 개수
    account_deleted: bool = False  # users/{uid} 문서와 Auth 계정 삭제 여부 (호출자가 기록)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def failed_count(self) -> int:
        return len(self.failed_resolutions) + len(self.failed_topics)

    @property
    def is_complete(self) -> bool:
        return self.failed_count == 0 and isinstance(self.ghost_comments, Completed)

    @property
    def status(self) -> str:
        return "completed" if self.is_complete else "partially_completed"
