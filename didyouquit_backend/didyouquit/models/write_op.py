# didyouquit/models/write_op.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from firebase_admin import firestore


class OpKind(Enum):
    DELETE = "delete"
    INCREMENT = "increment"


@dataclass(frozen=True)
class WriteOp:
    """
    배치에 담길 쓰기 연산 하나.
    전역 배치 객체를 공유하는 대신 연산 목록을 값으로 주고받습니다.
    """
    kind: OpKind
    ref: Any  # firestore DocumentReference
    field: Optional[str] = None
    amount: int = 0

    @classmethod
    def delete(cls, ref) -> "WriteOp":
        return cls(kind=OpKind.DELETE, ref=ref)

    @classmethod
    def increment(cls, ref, field: str, amount: int) -> "WriteOp":
        return cls(kind=OpKind.INCREMENT, ref=ref, field=field, amount=amount)

    def apply(self, batch) -> None:
        """연산을 firestore WriteBatch에 추가합니다."""
        if self.kind is OpKind.DELETE:
            batch.delete(self.ref)
        else:
            batch.update(self.ref, {self.field: firestore.Increment(self.amount)})
