"""
Shared pytest fixtures for the Sardia API tests.

This module provides:
- FakeFirestore: an in-memory stand-in for the Firestore client covering the
  calls the services make (documents, simple queries, count, transforms).
- FakeBucket: an in-memory Firebase Storage bucket that records deletions.
- Flask app / test client fixtures wired with both fakes.
"""

import copy
import functools
import threading
import uuid
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from sardia_api import create_app

TEST_CONFIG = {
    'JWT_SECRET_KEY': 'test-secret-key-for-session-tokens',
    'JWT_REFRESH_SECRET_KEY': 'test-secret-key-for-refresh-tokens',
}

ADMIN_USERNAME = 'editor'
ADMIN_PASSWORD = 'correct-horse-battery'


# =============================================================================
# Firestore test double
# =============================================================================

class FakeSnapshot:
    def __init__(self, reference, data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str):
        return (self._data or {}).get(field_path)


def _apply_field_update(doc: Dict[str, Any], key: str, value: Any) -> None:
    if value is firestore.DELETE_FIELD:
        doc.pop(key, None)
    elif isinstance(value, firestore.Increment):
        doc[key] = (doc.get(key) or 0) + value.value
    elif isinstance(value, firestore.ArrayUnion):
        current = list(doc.get(key) or [])
        for item in value.values:
            if item not in current:
                current.append(copy.deepcopy(item))
        doc[key] = current
    elif isinstance(value, firestore.ArrayRemove):
        doc[key] = [item for item in (doc.get(key) or []) if item not in value.values]
    else:
        doc[key] = copy.deepcopy(value)


class FakeDocumentReference:
    def __init__(self, collection: "FakeCollection", doc_id: str):
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._collection._docs

    @property
    def _lock(self):
        return self._collection._client._lock

    def get(self, transaction=None, field_paths=None) -> FakeSnapshot:
        with self._lock:
            return FakeSnapshot(self, copy.deepcopy(self._docs.get(self.id)))

    def set(self, document_data: Dict[str, Any], merge: bool = False) -> None:
        with self._lock:
            if merge and self.id in self._docs:
                self._docs[self.id].update(copy.deepcopy(document_data))
            else:
                self._docs[self.id] = copy.deepcopy(document_data)

    def create(self, document_data: Dict[str, Any]) -> None:
        with self._lock:
            if self.id in self._docs:
                raise google_exceptions.AlreadyExists(f"Document already exists: {self.id}")
            self._docs[self.id] = copy.deepcopy(document_data)

    def update(self, field_updates: Dict[str, Any]) -> None:
        with self._lock:
            if self.id not in self._docs:
                raise google_exceptions.NotFound(f"No document to update: {self.id}")
            doc = self._docs[self.id]
            for key, value in field_updates.items():
                _apply_field_update(doc, key, value)

    def delete(self) -> None:
        with self._lock:
            self._docs.pop(self.id, None)


class FakeAggregationQuery:
    def __init__(self, query: "FakeQuery"):
        self._query = query

    def get(self, transaction=None):
        return [[SimpleNamespace(alias='count', value=len(self._query._results()))]]


class FakeQuery:
    def __init__(self, collection: "FakeCollection", filters=(), orders=(), offset_value=0, limit_value=None):
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._offset = offset_value
        self._limit = limit_value

    def _copy(self, **changes) -> "FakeQuery":
        params = dict(filters=self._filters, orders=self._orders,
                      offset_value=self._offset, limit_value=self._limit)
        params.update(changes)
        return FakeQuery(self._collection, **params)

    def where(self, field_path: str, op_string: str, value: Any) -> "FakeQuery":
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = firestore.Query.ASCENDING) -> "FakeQuery":
        return self._copy(orders=self._orders + ((field_path, direction),))

    def offset(self, num_to_skip: int) -> "FakeQuery":
        return self._copy(offset_value=num_to_skip)

    def limit(self, count: int) -> "FakeQuery":
        return self._copy(limit_value=count)

    def count(self, alias=None) -> FakeAggregationQuery:
        return FakeAggregationQuery(self)

    def _matches(self, data: Dict[str, Any]) -> bool:
        for field_path, op, value in self._filters:
            current = data.get(field_path)
            if op == '==' and current != value:
                return False
            if op == '>' and not (current is not None and current > value):
                return False
        return True

    def _results(self) -> List[FakeSnapshot]:
        with self._collection._client._lock:
            items = [(doc_id, copy.deepcopy(data)) for doc_id, data in self._collection._docs.items()]
        items = [item for item in items if self._matches(item[1])]
        for field_path, direction in reversed(self._orders):
            items.sort(key=lambda item: item[1].get(field_path),
                       reverse=direction == firestore.Query.DESCENDING)
        items = items[self._offset:]
        if self._limit is not None:
            items = items[:self._limit]
        return [FakeSnapshot(self._collection.document(doc_id), data) for doc_id, data in items]

    def stream(self, transaction=None):
        return iter(self._results())

    def get(self, transaction=None):
        return self._results()


class FakeCollection(FakeQuery):
    def __init__(self, client: "FakeFirestore", name: str):
        super().__init__(self)
        self._client = client
        self.id = name
        self._docs: Dict[str, Dict[str, Any]] = {}

    def document(self, document_id: Optional[str] = None) -> FakeDocumentReference:
        return FakeDocumentReference(self, document_id or uuid.uuid4().hex)


class FakeTransaction:
    """Writes are applied immediately; firestore.transactional is replaced so transactions run one at a time."""

    def set(self, reference, document_data, merge=False):
        reference.set(document_data, merge=merge)

    def update(self, reference, field_updates):
        reference.update(field_updates)

    def delete(self, reference):
        reference.delete()


class FakeFirestore:
    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, FakeCollection] = {}

    def collection(self, name: str) -> FakeCollection:
        with self._lock:
            if name not in self._collections:
                self._collections[name] = FakeCollection(self, name)
            return self._collections[name]

    def transaction(self, **kwargs) -> FakeTransaction:
        return FakeTransaction()


# =============================================================================
# Firebase Storage test double
# =============================================================================

class FakeBlob:
    def __init__(self, bucket: "FakeBucket", name: str):
        self._bucket = bucket
        self.name = name

    @property
    def content_type(self):
        stored = self._bucket.files.get(self.name)
        return stored[1] if stored else None

    def upload_from_file(self, file_obj, content_type=None):
        self._bucket.files[self.name] = (file_obj.read(), content_type)

    def exists(self) -> bool:
        return self.name in self._bucket.files

    def download_as_bytes(self) -> bytes:
        if self.name not in self._bucket.files:
            raise google_exceptions.NotFound(f"No such object: {self.name}")
        return self._bucket.files[self.name][0]

    def delete(self):
        self._bucket.delete_calls.append(self.name)
        if self._bucket.fail_deletes:
            raise google_exceptions.ServiceUnavailable("storage unavailable")
        if self.name not in self._bucket.files:
            raise google_exceptions.NotFound(f"No such object: {self.name}")
        del self._bucket.files[self.name]


class FakeBucket:
    def __init__(self):
        self.files: Dict[str, tuple] = {}
        self.delete_calls: List[str] = []
        self.fail_deletes = False

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)

    def get_blob(self, name: str) -> Optional[FakeBlob]:
        return FakeBlob(self, name) if name in self.files else None


# =============================================================================
# Fixtures
# =============================================================================

_TRANSACTION_LOCK = threading.RLock()


def _serialized(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with _TRANSACTION_LOCK:
            return func(*args, **kwargs)
    return wrapper


@pytest.fixture(autouse=True)
def inline_transactions(monkeypatch):
    """Run transactional functions directly, one at a time, against the fake client."""
    monkeypatch.setattr(firestore, 'transactional', _serialized)


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def app(fake_db, fake_bucket):
    return create_app('testing', db=fake_db, bucket=fake_bucket, config_overrides=dict(TEST_CONFIG))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_token(app):
    admin_service = app.services['admins']
    admin_service.register(ADMIN_USERNAME, ADMIN_PASSWORD)
    return admin_service.login(ADMIN_USERNAME, ADMIN_PASSWORD)['token']


@pytest.fixture
def auth_headers(admin_token):
    return {'Authorization': f'Bearer {admin_token}'}
