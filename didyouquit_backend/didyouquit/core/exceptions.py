# didyouquit/core/exceptions.py
"""
연쇄 삭제(cascade) 과정에서 발생하는 예외 계층.

- EnumerationError: 삭제 대상을 조회하는 단계에서 실패. 아무것도 삭제되지 않았습니다.
- CommitError: 조회는 끝났지만 배치 커밋 중 실패. 이전 청크는 이미 반영되었습니다.
- UserCascadeError: 회원 탈퇴 연쇄 삭제의 치명적 실패. 그때까지의 결과 리포트를 함께 전달합니다.
"""

from typing import Any, Optional


class CascadeError(Exception):
    """연쇄 삭제 예외의 기본 클래스. 실패한 단계(stage)와 원인(cause)을 보존합니다."""

    def __init__(self, message: str, stage: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.stage = stage
        self.cause = cause


class EnumerationError(CascadeError):
    """삭제 대상(댓글, 일지 등)을 조회하지 못한 경우."""


class CommentTreeTooLargeError(EnumerationError):
    """댓글 트리의 노드 수가 허용 상한을 초과한 경우."""

    def __init__(self, stage: str, limit: int):
        super().__init__(f"댓글 트리가 허용 노드 수({limit})를 초과했습니다.", stage=stage)
        self.limit = limit


class CommitError(CascadeError):
    """배치 커밋이 실패한 경우. 앞선 청크에서 반영된 연산 수를 함께 보관합니다."""

    def __init__(self, stage: str, chunk_index: int, committed_operations: int, cause: BaseException):
        super().__init__(
            f"배치 커밋 실패 (stage: {stage}, chunk: {chunk_index}, 반영된 연산: {committed_operations}): {cause}",
            stage=stage,
            cause=cause,
        )
        self.chunk_index = chunk_index
        self.committed_operations = committed_operations


class UserCascadeError(CascadeError):
    """회원 탈퇴 연쇄 삭제가 중단된 경우. report에는 중단 시점까지 실제로 삭제된 내역이 담깁니다."""

    def __init__(self, message: str, stage: str, report: Any, cause: Optional[BaseException] = None):
        super().__init__(message, stage=stage, cause=cause)
        self.report = report
