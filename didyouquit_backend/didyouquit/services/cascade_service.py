# didyouquit/services/cascade_service.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from didyouquit.core.exceptions import EnumerationError
from didyouquit.models.comment import ContainerKind, ContainerRef
from didyouquit.models.write_op import WriteOp
from didyouquit.services.batch_executor import BatchExecutor
from didyouquit.services.comment_tree import CommentTreeResolver

DEFAULT_MAX_WORKERS = 8


class CascadeService:
    """
    단일 엔티티 연쇄 삭제를 담당하는 서비스 클래스.
    - 댓글 트리, 컨테이너(토픽/일지), 목표(resolution) 단위의 삭제를 제공합니다.
    - 삭제 대상 조회가 하나라도 실패하면 아무것도 커밋하지 않습니다.
    - 반환값은 실제로 존재하던 문서 중 삭제된 개수입니다.
    """

    def __init__(self, db=None, executor: Optional[BatchExecutor] = None,
                 tree_resolver: Optional[CommentTreeResolver] = None,
                 max_workers: Optional[int] = None):
        self.db = db or firestore.client()
        self.executor = executor or BatchExecutor(db=self.db)
        self.tree_resolver = tree_resolver or CommentTreeResolver(db=self.db)
        self.max_workers = DEFAULT_MAX_WORKERS if max_workers is None else max_workers
        if self.max_workers < 1:
            raise ValueError(f"max_workers는 1 이상이어야 합니다: {max_workers}")
        self.resolutions_ref = self.db.collection('resolutions')
        self.journals_ref = self.db.collection(ContainerKind.JOURNAL.value)

    def delete_comment(self, container: ContainerRef, root_comment_id: str) -> int:
        """
        댓글 하나와 그 모든 답글을 삭제하고 삭제된 개수를 반환합니다.
        컨테이너의 commentCount는 건드리지 않으므로 호출자가 반환값만큼 감소시켜야 합니다.
        """
        comment_ids = self.tree_resolver.resolve(container, root_comment_id)
        comments_ref = container.comments(self.db)
        ops = [WriteOp.delete(comments_ref.document(cid)) for cid in sorted(comment_ids)]

        self.executor.commit(ops, stage=f"comment:{container.path}/comments/{root_comment_id}")
        logging.info(f"댓글 삭제 완료: {container.path}/comments/{root_comment_id} (답글 포함 {len(ops)}개)")
        return len(ops)

    def delete_container(self, container: ContainerRef) -> int:
        """토픽 또는 일지 문서와 그 댓글 서브컬렉션 전체를 삭제합니다."""
        ops, removed = self.container_ops(container)
        self.executor.commit(ops, stage=f"container:{container.path}")
        logging.info(f"컨테이너 삭제 완료: {container.path} ({removed}개 문서)")
        return removed

    def delete_resolution(self, resolution_id: str) -> int:
        """
        목표 문서와, 이를 참조하는 모든 주간 일지 및 일지의 댓글을 삭제합니다.
        - 일지별 댓글 조회는 병렬로 수행하고, 모두 끝난 뒤에만 커밋합니다.
        - 한 일지라도 조회에 실패하면 EnumerationError로 전체를 중단합니다.
        """
        stage = f"resolution:{resolution_id}"
        resolution_ref = self.resolutions_ref.document(resolution_id)
        try:
            resolution_exists = resolution_ref.get().exists
            journal_docs = list(
                self.journals_ref.where(filter=FieldFilter('resolutionId', '==', resolution_id)).stream()
            )
        except Exception as e:
            logging.error(f"목표의 일지 조회 실패 (resolution_id: {resolution_id}): {e}", exc_info=True)
            raise EnumerationError(f"목표에 연결된 일지를 조회하지 못했습니다: {e}", stage=stage, cause=e) from e

        containers = [ContainerRef(ContainerKind.JOURNAL, doc.id) for doc in journal_docs]
        ops: List[WriteOp] = []
        removed = 0
        for journal_ops, count in self._map_concurrently(self.comment_ops, containers):
            ops.extend(journal_ops)
            removed += count

        for container in containers:
            ops.append(WriteOp.delete(container.document(self.db)))
        removed += len(containers)

        ops.append(WriteOp.delete(resolution_ref))
        if resolution_exists:
            removed += 1

        self.executor.commit(ops, stage=stage)
        logging.info(f"목표 삭제 완료 (resolution_id: {resolution_id}, 일지 {len(containers)}개, 총 {removed}개 문서)")
        return removed

    def container_ops(self, container: ContainerRef) -> Tuple[List[WriteOp], int]:
        """컨테이너 삭제에 필요한 연산 목록과, 그중 실제 존재하는 문서 수를 반환합니다."""
        ops, removed = self.comment_ops(container)
        container_ref = container.document(self.db)
        try:
            exists = container_ref.get().exists
        except Exception as e:
            logging.error(f"컨테이너 조회 실패 ({container.path}): {e}", exc_info=True)
            raise EnumerationError(f"컨테이너를 조회하지 못했습니다: {e}",
                                   stage=f"container:{container.path}", cause=e) from e
        ops.append(WriteOp.delete(container_ref))
        return ops, removed + (1 if exists else 0)

    def comment_ops(self, container: ContainerRef) -> Tuple[List[WriteOp], int]:
        """컨테이너의 댓글 서브컬렉션 전체에 대한 삭제 연산을 만듭니다."""
        try:
            comment_docs = list(container.comments(self.db).stream())
        except Exception as e:
            logging.error(f"댓글 목록 조회 실패 ({container.path}): {e}", exc_info=True)
            raise EnumerationError(f"댓글 목록을 조회하지 못했습니다: {e}",
                                   stage=f"comments:{container.path}", cause=e) from e
        return [WriteOp.delete(doc.reference) for doc in comment_docs], len(comment_docs)

    def _map_concurrently(self, fn, items):
        """fn을 items 각각에 병렬로 적용하고, 입력 순서대로 결과를 반환합니다. 첫 실패는 그대로 전파됩니다."""
        if len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as pool:
            futures = [pool.submit(fn, item) for item in items]
            return [future.result() for future in futures]
