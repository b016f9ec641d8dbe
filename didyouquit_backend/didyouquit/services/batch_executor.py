# didyouquit/services/batch_executor.py
"""
Firestore WriteBatch 실행기.

Firestore는 배치 하나에 최대 500개의 쓰기만 허용합니다.
연산 목록을 MAX_BATCH_OPS 단위 청크로 나누어 순서대로 커밋합니다.
- 청크 하나는 원자적으로 반영됩니다.
- 청크 사이의 원자성은 보장되지 않습니다. 중간 실패 시 앞선 청크는 그대로 남고,
  모든 연산이 멱등(삭제/증감)이므로 같은 작업을 다시 실행하면 됩니다.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from firebase_admin import firestore

from didyouquit.core.exceptions import CommitError
from didyouquit.models.write_op import WriteOp

MAX_BATCH_OPS = 500


def partition(ops: Sequence[WriteOp], size: int = MAX_BATCH_OPS) -> List[List[WriteOp]]:
    """연산 목록을 size 이하의 연속된 청크로 나눕니다. 입력 순서를 유지합니다."""
    if size <= 0:
        raise ValueError("청크 크기는 1 이상이어야 합니다.")
    return [list(ops[i:i + size]) for i in range(0, len(ops), size)]


def pack(groups: Sequence[Sequence[WriteOp]], size: int = MAX_BATCH_OPS) -> List[List[List[WriteOp]]]:
    """
    함께 반영되어야 하는 연산 묶음(group)들을 size 이하의 청크로 모읍니다.
    묶음 하나는 절대 두 청크로 나뉘지 않습니다. 입력 순서를 유지합니다.

    :return: 청크 목록. 각 청크는 묶음의 목록입니다.
    """
    if size <= 0:
        raise ValueError("청크 크기는 1 이상이어야 합니다.")
    chunks: List[List[List[WriteOp]]] = []
    current: List[List[WriteOp]] = []
    current_size = 0
    for group in groups:
        if len(group) > size:
            raise ValueError(f"연산 묶음({len(group)}개)이 청크 크기({size})보다 큽니다.")
        if current and current_size + len(group) > size:
            chunks.append(current)
            current, current_size = [], 0
        current.append(list(group))
        current_size += len(group)
    if current:
        chunks.append(current)
    return chunks


@dataclass
class BatchReport:
    """커밋된 연산 수와 청크 수."""
    operations: int = 0
    chunks: int = 0


class BatchExecutor:
    """연산 목록을 청크 단위 WriteBatch로 커밋하는 실행기."""

    def __init__(self, db=None, max_batch_ops: Optional[int] = None):
        self.db = db or firestore.client()
        if max_batch_ops is None:
            max_batch_ops = MAX_BATCH_OPS
        if max_batch_ops < 1:
            raise ValueError(f"max_batch_ops는 1 이상이어야 합니다: {max_batch_ops}")
        self.max_batch_ops = min(max_batch_ops, MAX_BATCH_OPS)

    def commit(self, ops: Sequence[WriteOp], stage: str) -> BatchReport:
        """
        연산 목록을 순서대로 커밋합니다.
        첫 번째 청크 커밋 실패 시 남은 청크는 실행하지 않고 CommitError를 발생시킵니다.

        :param ops: 커밋할 연산 목록
        :param stage: 로그와 예외에 남길 작업 단계 이름 (예: 'resolution:abc')
        :return: 커밋된 연산 수와 청크 수
        """
        report = BatchReport()
        for index, chunk in enumerate(partition(ops, self.max_batch_ops)):
            batch = self.db.batch()
            for op in chunk:
                op.apply(batch)
            try:
                batch.commit()
            except Exception as e:
                logging.error(
                    f"배치 커밋 실패 (stage: {stage}, chunk: {index}, 반영된 연산: {report.operations}): {e}",
                    exc_info=True
                )
                raise CommitError(stage=stage, chunk_index=index,
                                  committed_operations=report.operations, cause=e) from e
            report.operations += len(chunk)
            report.chunks += 1

        if report.chunks > 1:
            logging.info(f"배치 커밋 완료 (stage: {stage}, 연산: {report.operations}, 청크: {report.chunks})")
        return report
