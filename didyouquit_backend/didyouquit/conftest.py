# didyouquit/conftest.py
"""
테스트 공용 픽스처

- FakeFirestore: 서비스가 사용하는 Firestore 클라이언트 기능만 구현한 인메모리 저장소
  (문서/컬렉션 경로, '=='/'in' 필터, 컬렉션 그룹 조회, get_all, 배치 delete/Increment update)
- 조회/커밋 실패를 주입하고, 커밋된 배치 크기를 기록해 청크 분할을 검증할 수 있습니다.
"""

import threading
from typing import Any, Callable, Dict, List, Optional

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import NotFound

from didyouquit import create_app


def _get_field(data: Dict[str, Any], field_path: str) -> Any:
    value: Any = data
    for part in field_path.split('.'):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(data: Dict[str, Any], field_filter) -> bool:
    value = _get_field(data, field_filter.field_path)
    if field_filter.op_string == '==':
        return value == field_filter.value
    if field_filter.op_string == 'in':
        return value in field_filter.value
    raise NotImplementedError(field_filter.op_string)


class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentReference", data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self.exists = data is not None
        self._data = data

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return dict(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db: "FakeFirestore", path: str):
        self._db = db
        self.path = path
        self.id = path.rsplit('/', 1)[-1]

    @property
    def parent(self) -> "FakeCollectionReference":
        return FakeCollectionReference(self._db, self.path.rsplit('/', 1)[0])

    def collection(self, name: str) -> "FakeCollectionReference":
        return FakeCollectionReference(self._db, f"{self.path}/{name}")

    def get(self, **kwargs) -> FakeSnapshot:
        self._db.check_read(self.path)
        return FakeSnapshot(self, self._db.docs.get(self.path))

    def set(self, data: Dict[str, Any]) -> None:
        self._db.docs[self.path] = dict(data)

    def update(self, data: Dict[str, Any]) -> None:
        batch = self._db.batch()
        batch.update(self, data)
        batch.commit()

    def delete(self) -> None:
        self._db.docs.pop(self.path, None)

    def __eq__(self, other):
        return isinstance(other, FakeDocumentReference) and other.path == self.path

    def __hash__(self):
        return hash(self.path)


class FakeQuery:
    def __init__(self, db: "FakeFirestore", path: Optional[str] = None, group_id: Optional[str] = None,
                 filters: Optional[List[Any]] = None):
        self._db = db
        self._path = path
        self._group_id = group_id
        self._filters = filters or []

    def where(self, filter=None) -> "FakeQuery":
        return FakeQuery(self._db, self._path, self._group_id, self._filters + [filter])

    def _candidates(self) -> List[str]:
        if self._group_id is not None:
            self._db.check_group(self._group_id)
            return [p for p in self._db.docs if p.split('/')[-2] == self._group_id]
        self._db.check_read(self._path)
        depth = self._path.count('/') + 1
        return [p for p in self._db.docs if p.startswith(self._path + '/') and p.count('/') == depth]

    def stream(self):
        snapshots = []
        for path in sorted(self._candidates()):
            data = self._db.docs.get(path)
            if data is None:
                continue
            if all(_matches(data, f) for f in self._filters):
                snapshots.append(FakeSnapshot(FakeDocumentReference(self._db, path), data))
        return iter(snapshots)


class FakeCollectionReference(FakeQuery):
    def __init__(self, db: "FakeFirestore", path: str):
        super().__init__(db, path=path)
        self.id = path.rsplit('/', 1)[-1]

    @property
    def parent(self) -> Optional[FakeDocumentReference]:
        if '/' not in self._path:
            return None
        return FakeDocumentReference(self._db, self._path.rsplit('/', 1)[0])

    def document(self, document_id: Optional[str] = None) -> FakeDocumentReference:
        if document_id is None:
            self._db.auto_id += 1
            document_id = f"auto{self._db.auto_id:06d}"
        return FakeDocumentReference(self._db, f"{self._path}/{document_id}")


class FakeWriteBatch:
    def __init__(self, db: "FakeFirestore"):
        self._db = db
        self._writes: List[tuple] = []

    def delete(self, ref: FakeDocumentReference) -> None:
        self._writes.append(('delete', ref.path, None))

    def update(self, ref: FakeDocumentReference, data: Dict[str, Any]) -> None:
        self._writes.append(('update', ref.path, data))

    def commit(self) -> None:
        if len(self._writes) > 500:
            raise ValueError("maximum 500 writes allowed per request")
        self._db.apply(self._writes)


class FakeFirestore:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.commits: List[int] = []  # 커밋된 배치별 연산 수
        self.auto_id = 0
        self.failing_paths: set = set()
        self.failing_groups: set = set()
        self.fail_commit: Optional[Callable[[int, List[tuple]], bool]] = None
        self._lock = threading.Lock()

    # --- 클라이언트 API ---
    def collection(self, name: str) -> FakeCollectionReference:
        return FakeCollectionReference(self, name)

    def collection_group(self, group_id: str) -> FakeQuery:
        return FakeQuery(self, group_id=group_id)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)

    def get_all(self, refs):
        return [ref.get() for ref in refs]

    def document(self, path: str) -> FakeDocumentReference:
        return FakeDocumentReference(self, path)

    # --- 테스트 보조 ---
    def seed(self, path: str, data: Optional[Dict[str, Any]] = None) -> None:
        self.docs[path] = dict(data or {})

    def exists(self, path: str) -> bool:
        return path in self.docs

    def paths_under(self, prefix: str) -> List[str]:
        return sorted(p for p in self.docs if p.startswith(prefix))

    def check_read(self, path: str) -> None:
        if path in self.failing_paths:
            raise RuntimeError(f"permission denied: {path}")

    def check_group(self, group_id: str) -> None:
        if group_id in self.failing_groups:
            raise RuntimeError(f"FAILED_PRECONDITION: index required for collection group '{group_id}'")

    def apply(self, writes: List[tuple]) -> None:
        with self._lock:
            if self.fail_commit and self.fail_commit(len(self.commits), writes):
                raise RuntimeError("commit failed")
            for kind, path, data in writes:
                if kind == 'update' and path not in self.docs:
                    raise NotFound(f"No document to update: {path}")
            for kind, path, data in writes:
                if kind == 'delete':
                    self.docs.pop(path, None)
                    continue
                doc = self.docs[path]
                for field, value in data.items():
                    if isinstance(value, firestore.Increment):
                        doc[field] = (doc.get(field) or 0) + value.value
                    else:
                        doc[field] = value
            self.commits.append(len(writes))


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def app(db):
    app = create_app('testing', db=db)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    from flask_jwt_extended import create_access_token

    def _headers(user_id: str) -> Dict[str, str]:
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
