# didyouquit/services/user_cascade_service.py
"""
회원 탈퇴 시 사용자의 흔적을 모두 제거하는 연쇄 삭제 서비스.

처리 순서:
1. 사용자가 소유한 목표(resolution) 삭제 (목표별로 병렬, 서로 독립)
2. 사용자가 보내거나 받은 알림 삭제
3. 사용자가 작성한 포럼 토픽 삭제 (토픽별 댓글 배치 후 공용 배치에 토픽 삭제 추가)
4. 팔로워/팔로잉 관계 정리
5. 다른 사람의 글에 남긴 '고스트 댓글' 삭제 및 commentCount 감소 (best-effort)

users/{uid} 문서와 Firebase Auth 계정은 호출자가 이 작업 이후에 삭제합니다.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from didyouquit.core.exceptions import CascadeError, CommitError, UserCascadeError
from didyouquit.models.cascade import CleanupResult, Completed, PartiallyCompleted, UserCascadeReport
from didyouquit.models.comment import COMMENTS_SUBCOLLECTION, CommentRef, ContainerKind, ContainerRef
from didyouquit.models.write_op import WriteOp
from didyouquit.services.batch_executor import BatchExecutor, pack
from didyouquit.services.cascade_service import DEFAULT_MAX_WORKERS, CascadeService
from didyouquit.utils.datetime_utils import DateTimeUtils

# 과거 데이터에는 소유자/작성자 필드 이름이 섞여 있어 두 필드를 모두 조회합니다.
RESOLUTION_OWNER_FIELDS = ('uid', 'userId')
TOPIC_AUTHOR_FIELDS = ('author.uid',)
COMMENT_AUTHOR_FIELDS = ('author.uid', 'authorUid')


class UserCascadeService:
    """
    사용자 단위 연쇄 삭제 서비스.
    - 목표/토픽 단위의 실패는 모아서 리포트에 기록하고 나머지 작업은 계속합니다.
    - 1~4단계의 자체 조회(또는 공용 배치 커밋)가 실패하면 UserCascadeError로 중단합니다.
    - 고스트 댓글 정리 실패는 PartiallyCompleted 결과로만 기록합니다.
    """

    def __init__(self, db=None, cascade_service: Optional[CascadeService] = None,
                 executor: Optional[BatchExecutor] = None, max_workers: Optional[int] = None):
        self.db = db or firestore.client()
        self.executor = executor or BatchExecutor(db=self.db)
        self.cascade_service = cascade_service or CascadeService(db=self.db, executor=self.executor)
        self.max_workers = DEFAULT_MAX_WORKERS if max_workers is None else max_workers
        if self.max_workers < 1:
            raise ValueError(f"max_workers는 1 이상이어야 합니다: {max_workers}")
        self.users_ref = self.db.collection('users')
        self.resolutions_ref = self.db.collection('resolutions')
        self.notifications_ref = self.db.collection('notifications')
        self.topics_ref = self.db.collection(ContainerKind.TOPIC.value)

    def delete_user_data(self, user_id: str) -> UserCascadeReport:
        """사용자가 소유하거나 참조하는 모든 문서를 삭제하고 결과 리포트를 반환합니다."""
        report = UserCascadeReport(user_id=user_id, started_at=DateTimeUtils.now())
        logging.info(f"회원 데이터 연쇄 삭제 시작 (user_id: {user_id})")

        self._delete_resolutions(user_id, report)

        shared_ops = self._notification_ops(user_id, report)
        pending_topics = self._delete_topic_comments(user_id, report)
        shared_ops.extend(WriteOp.delete(self.topics_ref.document(tid)) for tid in pending_topics)
        self._commit_shared(shared_ops, pending_topics, report)

        self._delete_connections(user_id, report)

        report.ghost_comments = self._delete_ghost_comments(user_id)
        report.removed += report.ghost_comments.removed

        report.finished_at = DateTimeUtils.now()
        logging.info(
            f"회원 데이터 연쇄 삭제 종료 (user_id: {user_id}, 상태: {report.status}, "
            f"삭제: {report.removed}개, 실패한 목표: {len(report.failed_resolutions)}개, "
            f"실패한 토픽: {len(report.failed_topics)}개)"
        )
        return report

    # --- 1단계: 목표 ---
    def _delete_resolutions(self, user_id: str, report: UserCascadeReport) -> None:
        docs = self._query_union(
            [self.resolutions_ref.where(filter=FieldFilter(f, '==', user_id)) for f in RESOLUTION_OWNER_FIELDS],
            stage="resolutions", report=report,
        )
        resolution_ids = sorted(doc.id for doc in docs)
        if not resolution_ids:
            return

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(resolution_ids))) as pool:
            futures = {rid: pool.submit(self.cascade_service.delete_resolution, rid) for rid in resolution_ids}

        for rid, future in futures.items():
            try:
                report.removed += future.result()
                report.resolutions_deleted.append(rid)
            except CascadeError as e:
                logging.error(f"목표 연쇄 삭제 실패 (user_id: {user_id}, resolution_id: {rid}): {e}")
                report.failed_resolutions[rid] = str(e)
                if isinstance(e, CommitError):
                    report.removed += e.committed_operations
            except Exception as e:
                logging.error(f"목표 연쇄 삭제 중 예상치 못한 오류 (user_id: {user_id}, resolution_id: {rid}): {e}",
                              exc_info=True)
                report.failed_resolutions[rid] = str(e)
        logging.info(f"목표 {len(report.resolutions_deleted)}개 삭제 (user_id: {user_id})")

    # --- 2단계: 알림 ---
    def _notification_ops(self, user_id: str, report: UserCascadeReport) -> List[WriteOp]:
        docs = self._query_union(
            [
                self.notifications_ref.where(filter=FieldFilter('recipientUid', '==', user_id)),
                self.notifications_ref.where(filter=FieldFilter('senderUid', '==', user_id)),
            ],
            stage="notifications", report=report,
        )
        return [WriteOp.delete(doc.reference) for doc in docs]

    # --- 3단계: 포럼 토픽 ---
    def _delete_topic_comments(self, user_id: str, report: UserCascadeReport) -> List[str]:
        """
        토픽별로 댓글 서브컬렉션을 먼저 삭제하고, 성공한 토픽 ID 목록을 반환합니다.
        토픽 문서 자체는 공용 배치에서 삭제합니다.
        """
        docs = self._query_union(
            [self.topics_ref.where(filter=FieldFilter(f, '==', user_id)) for f in TOPIC_AUTHOR_FIELDS],
            stage="topics", report=report,
        )
        pending: List[str] = []
        for doc in sorted(docs, key=lambda d: d.id):
            container = ContainerRef(ContainerKind.TOPIC, doc.id)
            try:
                ops, count = self.cascade_service.comment_ops(container)
                self.executor.commit(ops, stage=f"topic_comments:{doc.id}")
            except CascadeError as e:
                logging.error(f"토픽 댓글 삭제 실패 (user_id: {user_id}, topic_id: {doc.id}): {e}")
                report.failed_topics[doc.id] = str(e)
                if isinstance(e, CommitError):
                    report.removed += e.committed_operations
                continue
            report.removed += count
            pending.append(doc.id)
        return pending

    def _commit_shared(self, ops: List[WriteOp], topic_ids: List[str], report: UserCascadeReport) -> None:
        """알림 삭제와 토픽 문서 삭제를 함께 커밋합니다."""
        try:
            self.executor.commit(ops, stage="notifications_and_topics")
        except CommitError as e:
            report.removed += e.committed_operations
            raise UserCascadeError(f"알림/토픽 삭제 커밋 실패: {e}", stage=e.stage, report=report, cause=e) from e
        report.notifications_deleted = len(ops) - len(topic_ids)
        report.topics_deleted.extend(topic_ids)
        report.removed += len(ops)
        logging.info(f"알림 {report.notifications_deleted}개, 토픽 {len(topic_ids)}개 삭제 (user_id: {report.user_id})")

    # --- 4단계: 팔로우 관계 ---
    def _delete_connections(self, user_id: str, report: UserCascadeReport) -> None:
        """내 followers/following 기록과, 상대방 쪽에 남은 대칭 기록을 함께 삭제합니다."""
        me = self.users_ref.document(user_id)
        followers = self._query_union([me.collection('followers')], stage="followers", report=report)
        following = self._query_union([me.collection('following')], stage="following", report=report)

        ops: List[WriteOp] = []
        for doc in followers:
            ops.append(WriteOp.delete(self.users_ref.document(doc.id).collection('following').document(user_id)))
            ops.append(WriteOp.delete(doc.reference))
        for doc in following:
            ops.append(WriteOp.delete(self.users_ref.document(doc.id).collection('followers').document(user_id)))
            ops.append(WriteOp.delete(doc.reference))

        try:
            self.executor.commit(ops, stage="connections")
        except CommitError as e:
            raise UserCascadeError(f"팔로우 관계 정리 커밋 실패: {e}", stage=e.stage, report=report, cause=e) from e
        report.connections_removed = len(followers) + len(following)
        report.removed += report.connections_removed

    # --- 5단계: 고스트 댓글 ---
    def _delete_ghost_comments(self, user_id: str) -> CleanupResult:
        """
        다른 사용자의 토픽/일지에 남긴 댓글을 컬렉션 그룹 조회로 찾아 삭제하고,
        컨테이너별로 삭제 개수만큼 commentCount를 감소시킵니다.
        - 컨테이너 하나의 댓글 삭제와 commentCount 감소는 항상 같은 배치에 담깁니다.
        - 배치가 실패하면 묶음 단위로 다시 커밋하므로, 한 컨테이너의 실패가 다른 컨테이너 정리를 막지 않습니다.
        """
        try:
            snapshots = self._authored_comments(user_id)
        except Exception as e:
            # 색인 누락 등으로 조회가 실패해도 탈퇴 자체는 막지 않습니다.
            logging.warning(f"고스트 댓글 조회 실패, 정리를 건너뜁니다 (user_id: {user_id}): {e}")
            return PartiallyCompleted(reason=f"고스트 댓글 조회 실패: {e}")

        if not snapshots:
            return Completed()
        if self.executor.max_batch_ops < 2:
            return PartiallyCompleted(reason="배치 한도가 2 미만이면 댓글 삭제와 commentCount 감소를 함께 커밋할 수 없습니다.")

        by_container: Dict[ContainerRef, List] = {}
        unattached: List = []
        for snapshot in snapshots:
            comment_ref = CommentRef.from_snapshot(snapshot)
            if comment_ref is None:
                unattached.append(snapshot.reference)
                continue
            by_container.setdefault(comment_ref.container, []).append(snapshot.reference)

        try:
            live = self._existing_containers(list(by_container))
        except Exception as e:
            logging.warning(f"고스트 댓글 컨테이너 확인 실패, 정리를 건너뜁니다 (user_id: {user_id}): {e}")
            return PartiallyCompleted(reason=f"컨테이너 확인 실패: {e}")

        units: List[_GhostUnit] = []
        for container, refs in by_container.items():
            if container not in live:
                logging.warning(f"컨테이너가 이미 삭제되어 commentCount 감소를 건너뜁니다: {container.path}")
            units.extend(self._ghost_units(container, refs, decrement=container in live))
        units.extend(self._ghost_units(None, unattached, decrement=False))

        removed = 0
        failures: List[str] = []
        for chunk in pack([unit.ops(self.db) for unit in units], self.executor.max_batch_ops):
            chunk_units = units[:len(chunk)]
            units = units[len(chunk):]
            try:
                self.executor.commit([op for group in chunk for op in group], stage="ghost_comments")
                removed += sum(len(unit.refs) for unit in chunk_units)
                continue
            except CommitError as e:
                logging.warning(f"고스트 댓글 배치 실패, 컨테이너별로 다시 시도합니다 (user_id: {user_id}): {e}")
            for unit in chunk_units:
                error = self._commit_ghost_unit(unit)
                if error is None:
                    removed += len(unit.refs)
                else:
                    failures.append(error)

        if failures:
            logging.warning(f"고스트 댓글 정리 일부 실패 (user_id: {user_id}, 삭제: {removed}개, 실패: {len(failures)}건)")
            return PartiallyCompleted(reason="; ".join(failures), removed=removed)

        logging.info(f"고스트 댓글 {removed}개 삭제, 컨테이너 {len(by_container)}개 갱신 (user_id: {user_id})")
        return Completed(removed=removed)

    def _ghost_units(self, container: Optional[ContainerRef], refs: List, decrement: bool) -> List["_GhostUnit"]:
        """댓글 삭제(+감소) 묶음을 배치 한도에 맞게 나눕니다. 나뉜 묶음마다 자기 삭제 개수만큼 감소시킵니다."""
        step = self.executor.max_batch_ops - 1 if decrement else self.executor.max_batch_ops
        return [_GhostUnit(container, refs[i:i + step], decrement) for i in range(0, len(refs), step)]

    def _commit_ghost_unit(self, unit: "_GhostUnit") -> Optional[str]:
        """
        묶음 하나를 단독으로 커밋합니다. 실패 원인이 사라진 컨테이너라면 감소 없이 삭제만 다시 시도합니다.
        :return: 실패 사유 (성공 시 None)
        """
        label = unit.container.path if unit.container else "unattached"
        try:
            self.executor.commit(unit.ops(self.db), stage=f"ghost_comments:{label}")
            return None
        except CommitError as e:
            error = e

        if unit.decrement and not self._container_exists(unit.container):
            logging.warning(f"컨테이너가 정리 도중 삭제되어 commentCount 감소를 건너뜁니다: {label}")
            retry = _GhostUnit(unit.container, unit.refs, decrement=False)
            try:
                self.executor.commit(retry.ops(self.db), stage=f"ghost_comments:{label}")
                return None
            except CommitError as e:
                error = e
        return f"{label}: {error}"

    def _container_exists(self, container: ContainerRef) -> bool:
        try:
            return container.document(self.db).get().exists
        except Exception as e:
            logging.warning(f"컨테이너 존재 여부 확인 실패 ({container.path}): {e}")
            return True

    def _authored_comments(self, user_id: str) -> List:
        """모든 comments 서브컬렉션에서 사용자가 작성한 댓글을 찾습니다. 문서 경로 기준으로 중복 제거합니다."""
        found = {}
        for field in COMMENT_AUTHOR_FIELDS:
            query = self.db.collection_group(COMMENTS_SUBCOLLECTION).where(filter=FieldFilter(field, '==', user_id))
            for doc in query.stream():
                found.setdefault(doc.reference.path, doc)
        return list(found.values())

    def _existing_containers(self, containers: List[ContainerRef]) -> Set[ContainerRef]:
        if not containers:
            return set()
        by_path = {c.path: c for c in containers}
        snapshots = self.db.get_all([c.document(self.db) for c in containers])
        return {by_path[s.reference.path] for s in snapshots if s.exists and s.reference.path in by_path}

    # --- 공통 ---
    def _query_union(self, queries, stage: str, report: UserCascadeReport) -> List:
        """여러 조회 결과를 문서 경로 기준으로 합칩니다. 실패 시 UserCascadeError로 중단합니다."""
        found = {}
        try:
            for query in queries:
                for doc in query.stream():
                    found.setdefault(doc.reference.path, doc)
        except Exception as e:
            logging.error(f"회원 데이터 조회 실패 (user_id: {report.user_id}, stage: {stage}): {e}", exc_info=True)
            raise UserCascadeError(f"{stage} 조회 실패: {e}", stage=stage, report=report, cause=e) from e
        return list(found.values())


@dataclass(frozen=True)
class _GhostUnit:
    """같은 배치에 반영되어야 하는 고스트 댓글 삭제 묶음. decrement가 참이면 컨테이너 commentCount 감소를 포함합니다."""
    container: Optional[ContainerRef]
    refs: List
    decrement: bool

    def ops(self, db) -> List[WriteOp]:
        ops = [WriteOp.delete(ref) for ref in self.refs]
        if self.decrement:
            ops.append(WriteOp.increment(self.container.document(db), 'commentCount', -len(self.refs)))
        return ops
