# didyouquit/services/comment_tree.py
import logging
from typing import Iterator, List, Optional, Set

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from didyouquit.core.exceptions import CommentTreeTooLargeError, EnumerationError
from didyouquit.models.comment import ContainerRef

DEFAULT_MAX_NODES = 5000
IN_QUERY_LIMIT = 30  # Firestore 'in' 필터에 넣을 수 있는 최대 값 개수


class CommentTreeResolver:
    """
    한 컨테이너 안에서 특정 댓글과 그 모든 답글(자손)의 ID 집합을 구합니다.
    - 'parentId in (현재 단계 ID들)' 조회를 단계별로 반복하는 너비 우선 탐색입니다.
    - 같은 컨테이너 내 parentId 관계는 숲(forest)이므로 탐색은 반드시 끝납니다.
    - 이미 찾은 ID는 다시 큐에 넣지 않으므로 중복 집계가 없습니다.
    """

    def __init__(self, db=None, max_nodes: Optional[int] = None):
        self.db = db or firestore.client()
        if max_nodes is None:
            max_nodes = DEFAULT_MAX_NODES
        if max_nodes < 1:
            raise ValueError(f"max_nodes는 1 이상이어야 합니다: {max_nodes}")
        self.max_nodes = max_nodes

    def resolve(self, container: ContainerRef, root_comment_id: str) -> Set[str]:
        """
        루트 댓글에서 '답글' 관계를 따라 도달 가능한 모든 댓글 ID를 반환합니다.
        루트 문서가 이미 없으면 결과에서 제외하되, 남아 있는 답글은 계속 탐색합니다.

        :raises CommentTreeTooLargeError: 노드 수가 max_nodes를 넘는 경우
        :raises EnumerationError: 조회 실패 시 (원인 예외 보존)
        """
        stage = f"comment_tree:{container.path}/comments/{root_comment_id}"
        comments_ref = container.comments(self.db)

        try:
            root_exists = comments_ref.document(root_comment_id).get().exists
            found: Set[str] = {root_comment_id}
            frontier: List[str] = [root_comment_id]

            while frontier:
                next_frontier: List[str] = []
                for child_id in self._children_of(comments_ref, frontier):
                    if child_id in found:
                        continue
                    found.add(child_id)
                    next_frontier.append(child_id)
                    if len(found) > self.max_nodes:
                        raise CommentTreeTooLargeError(stage=stage, limit=self.max_nodes)
                frontier = next_frontier
        except EnumerationError:
            raise
        except Exception as e:
            logging.error(f"댓글 트리 조회 실패 ({stage}): {e}", exc_info=True)
            raise EnumerationError(f"댓글 트리를 조회하지 못했습니다: {e}", stage=stage, cause=e) from e

        if not root_exists:
            found.discard(root_comment_id)
        return found

    def _children_of(self, comments_ref, parent_ids: List[str]) -> Iterator[str]:
        """parentId가 parent_ids 중 하나인 댓글 ID를 순회합니다."""
        for i in range(0, len(parent_ids), IN_QUERY_LIMIT):
            chunk_ids = parent_ids[i:i + IN_QUERY_LIMIT]
            query = comments_ref.where(filter=FieldFilter('parentId', 'in', chunk_ids))
            for doc in query.stream():
                yield doc.id
