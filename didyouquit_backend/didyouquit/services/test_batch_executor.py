# didyouquit/services/test_batch_executor.py
"""
배치 실행기 테스트

사용법: python -m pytest didyouquit/services/test_batch_executor.py -v
"""

import pytest

from didyouquit.core.exceptions import CommitError
from didyouquit.models.write_op import OpKind, WriteOp
from didyouquit.services.batch_executor import MAX_BATCH_OPS, BatchExecutor, pack, partition


def _delete_ops(db, count, collection='notifications'):
    return [WriteOp.delete(db.collection(collection).document(f"n{i:04d}")) for i in range(count)]


def test_partition_splits_into_bounded_chunks(db):
    """1200개 연산은 500, 500, 200으로 나뉘고 순서가 유지되어야 함"""
    ops = _delete_ops(db, 1200)
    chunks = partition(ops, 500)

    assert [len(c) for c in chunks] == [500, 500, 200]
    assert [op for chunk in chunks for op in chunk] == ops


def test_partition_edge_cases(db):
    """빈 목록, 정확히 한도, 잘못된 크기"""
    assert partition([], 500) == []
    assert [len(c) for c in partition(_delete_ops(db, 500), 500)] == [500]
    with pytest.raises(ValueError):
        partition(_delete_ops(db, 3), 0)


def test_commit_reports_operations_and_chunks(db):
    """커밋된 연산 수와 청크 수를 보고하고, 어떤 배치도 한도를 넘지 않아야 함"""
    for i in range(1001):
        db.seed(f"notifications/n{i:04d}", {"recipientUid": "u1"})

    report = BatchExecutor(db=db, max_batch_ops=500).commit(_delete_ops(db, 1001), stage="test")

    assert report.operations == 1001
    assert report.chunks == 3
    assert db.commits == [500, 500, 1]
    assert db.paths_under("notifications/") == []


def test_commit_empty_is_noop(db):
    report = BatchExecutor(db=db).commit([], stage="empty")
    assert (report.operations, report.chunks) == (0, 0)
    assert db.commits == []


def test_max_batch_ops_never_exceeds_store_limit(db):
    """설정값이 500을 넘어도 실행기는 500으로 제한해야 함"""
    executor = BatchExecutor(db=db, max_batch_ops=2000)
    assert executor.max_batch_ops == MAX_BATCH_OPS

    executor.commit(_delete_ops(db, 750), stage="limit")
    assert max(db.commits) <= MAX_BATCH_OPS


def test_commit_fails_fast_and_reports_committed_operations(db):
    """두 번째 청크 실패 시 남은 청크는 실행하지 않고, 이미 반영된 연산 수를 알려야 함"""
    for i in range(12):
        db.seed(f"notifications/n{i:04d}", {})
    db.fail_commit = lambda index, writes: index == 1

    with pytest.raises(CommitError) as exc_info:
        BatchExecutor(db=db, max_batch_ops=5).commit(_delete_ops(db, 12), stage="notifications")

    err = exc_info.value
    assert err.stage == "notifications"
    assert err.chunk_index == 1
    assert err.committed_operations == 5
    assert isinstance(err.cause, RuntimeError)
    # 첫 청크만 반영되고 나머지는 그대로 남아 있어야 함
    assert len(db.paths_under("notifications/")) == 7


def test_increment_op_updates_counter(db):
    """증감 연산은 Increment 변환으로 적용되어야 함"""
    db.seed("forum_topics/t1", {"commentCount": 4})
    op = WriteOp.increment(db.collection("forum_topics").document("t1"), "commentCount", -3)

    assert op.kind is OpKind.INCREMENT
    BatchExecutor(db=db).commit([op], stage="counter")
    assert db.docs["forum_topics/t1"]["commentCount"] == 1


def test_pack_keeps_groups_together(db):
    """묶음은 청크 경계에서 나뉘지 않아야 함"""
    ops = _delete_ops(db, 7)
    groups = [ops[0:2], ops[2:5], ops[5:7]]

    chunks = pack(groups, 4)

    assert chunks == [[ops[0:2]], [ops[2:5]], [ops[5:7]]]
    assert pack([ops[0:1], ops[1:3]], 3) == [[ops[0:1], ops[1:3]]]
    with pytest.raises(ValueError):
        pack([ops[0:5]], 4)


def test_explicit_zero_batch_size_is_rejected(db):
    """0은 기본값으로 바뀌지 않고 설정 오류로 처리"""
    with pytest.raises(ValueError):
        BatchExecutor(db=db, max_batch_ops=0)
