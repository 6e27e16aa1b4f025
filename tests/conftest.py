"""
Pytest configuration and fixtures for Peerhelp tests.

Provides shared fixtures for:
- Test environment settings
- Firestore mock chains (documents, queries, batches)
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from libs.common.settings import get_settings


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    # Ensure we're in test mode
    monkeypatch.setenv("PEERHELP_APP_ENV", "test")
    for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
        monkeypatch.delenv(f"PEERHELP_{name}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_snapshot(doc_id, data, exists=True, reference=None):
    """Build a mock DocumentSnapshot."""
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = dict(data) if data is not None else None
    snapshot.reference = reference if reference is not None else MagicMock()
    return snapshot


def make_doc_ref(snapshot=None):
    """Build a mock DocumentReference whose awaited methods are AsyncMocks."""
    doc_ref = MagicMock()
    doc_ref.get = AsyncMock(return_value=snapshot if snapshot is not None else make_snapshot("missing", None, exists=False))
    doc_ref.set = AsyncMock()
    doc_ref.update = AsyncMock()
    doc_ref.delete = AsyncMock()
    return doc_ref


@pytest.fixture
def mock_batch():
    """A WriteBatch mock: set/update/delete are recorded, commit is awaited."""
    batch = MagicMock()
    batch.commit = AsyncMock()
    return batch


@pytest.fixture
def mock_transaction():
    """An AsyncTransaction mock: set/update/delete/create are recorded."""
    return MagicMock()


@pytest.fixture
def firestore_client(mock_batch, mock_transaction):
    """
    Provides a Firestore AsyncClient mock whose collections are keyed by path.

    Tests register collections with `client.collections[path] = collection_mock`;
    unknown paths get a fresh MagicMock so the chain never breaks.
    """
    client = MagicMock()
    client.collections = {}

    def collection(path):
        return client.collections.setdefault(path, MagicMock())

    client.collection.side_effect = collection
    client.batch.return_value = mock_batch
    client.transaction.return_value = mock_transaction
    client.recursive_delete = AsyncMock()
    return client


@pytest.fixture
def snapshot():
    """Factory fixture for mock DocumentSnapshots."""
    return make_snapshot


@pytest.fixture
def doc_ref():
    """Factory fixture for mock DocumentReferences."""
    return make_doc_ref
