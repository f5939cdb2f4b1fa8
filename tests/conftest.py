"""
Shared test fixtures.

The Supabase mock keeps table rows and storage objects in memory, so
services see the effect of their own writes (inserted attachments, updated
primary images, removed files) within a test.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters are applied to the shared row list of the table when the query
    executes, so updates and deletes really change the stored rows.
    """

    def __init__(self, table: "MockSupabaseTable", operation: str, payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._limit = None
        self._is_single = False

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def neq(self, column, value):
        self._filters.append((column, ("!=", value)))
        return self

    def order(self, column, **kwargs):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    def _matches(self, row: dict) -> bool:
        for column, value in self._filters:
            if isinstance(value, tuple) and value[0] == "!=":
                if str(row.get(column)) == str(value[1]):
                    return False
            elif str(row.get(column)) != str(value):
                return False
        return True

    def execute(self) -> MockSupabaseResponse:
        self._table.check_failure(self._operation)
        rows = self._table.rows

        if self._operation == "insert":
            data = self._insert()
        elif self._operation == "update":
            data = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    row["updated_at"] = datetime.utcnow().isoformat() + "Z"
                    data.append(dict(row))
        elif self._operation == "delete":
            data = [dict(row) for row in rows if self._matches(row)]
            rows[:] = [row for row in rows if not self._matches(row)]
        else:
            data = [dict(row) for row in rows if self._matches(row)]
            count = len(data)
            if self._limit is not None:
                data = data[:self._limit]
            if self._is_single:
                return MockSupabaseResponse(data=data[0] if data else None, count=count)
            return MockSupabaseResponse(data=data, count=count)

        return MockSupabaseResponse(data=data)

    def _insert(self) -> list:
        payload = self._payload if isinstance(self._payload, list) else [self._payload]
        inserted = []
        for item in payload:
            row = dict(item)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
            self._table.rows.append(row)
            inserted.append(dict(row))
        return inserted


class MockSupabaseTable:
    """Mock Supabase table backed by a shared list of rows."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self.name = name

    @property
    def rows(self) -> list:
        return self._client._tables.setdefault(self.name, [])

    def check_failure(self, operation: str):
        error = self._client._failures.get((self.name, operation))
        if error is not None:
            raise error

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockStorageBucket:
    """Mock Supabase Storage bucket holding objects in a dict."""

    def __init__(self, name: str):
        self.name = name
        self.files: dict[str, bytes] = {}
        self.options: dict[str, dict] = {}
        self.fail_uploads = False
        self.fail_removes = False

    def upload(self, path: str, file: bytes, file_options: dict = None):
        if self.fail_uploads:
            raise Exception("Storage upload failed")
        self.files[path] = file
        self.options[path] = file_options or {}
        return {"Key": f"{self.name}/{path}"}

    def remove(self, paths: list):
        if self.fail_removes:
            raise Exception("Storage remove failed")
        removed = []
        for path in paths:
            if self.files.pop(path, None) is not None:
                removed.append({"name": path})
        return removed

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"


class MockStorage:
    """Mock of client.storage."""

    def __init__(self):
        self._buckets: dict[str, MockStorageBucket] = {}

    def from_(self, bucket: str) -> MockStorageBucket:
        if bucket not in self._buckets:
            self._buckets[bucket] = MockStorageBucket(bucket)
        return self._buckets[bucket]


class MockSupabaseClient:
    """Mock Supabase client with in-memory tables and storage."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._failures: dict[tuple, Exception] = {}
        self.storage = MockStorage()

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure rows for a table (copied so tests keep their originals)."""
        self._tables[table_name] = [dict(row) for row in data]

    def get_table_data(self, table_name: str) -> list:
        """Current rows of a table."""
        return self._tables.get(table_name, [])

    def fail_on(self, table_name: str, operation: str, error: Exception = None):
        """Make every `operation` on `table_name` raise."""
        self._failures[(table_name, operation)] = error or Exception(f"{operation} on {table_name} failed")

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, name)

    @property
    def bucket(self) -> MockStorageBucket:
        """The product image bucket."""
        from config import settings
        return self.storage.from_(settings.storage_bucket)


# ===================
# FIXTURES
# ===================

def _reset_services():
    import services.catalog_service as catalog_module
    import services.object_store_service as object_store_module
    import services.sku_resolver_service as resolver_module
    import services.attachment_service as attachment_module
    import services.staging_service as staging_module
    import services.batch_upload_service as batch_module
    import services.undo_service as undo_module
    from services.upload_session_service import clear_sessions

    catalog_module._catalog_service = None
    object_store_module._object_store_service = None
    resolver_module._sku_resolver_service = None
    attachment_module._attachment_service = None
    staging_module._staging_service = None
    batch_module._batch_upload_service = None
    undo_module._undo_service = None
    clear_sessions()


@pytest.fixture(autouse=True)
def reset_services():
    """Drop service singletons and upload sessions around every test."""
    _reset_services()
    yield
    _reset_services()


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "sku": "ABC123", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.object_store_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def sample_products_list() -> list:
    """
    Catalog used by most engine tests.

    - ABC123: no images yet
    - XYZ999: has primary image img-1
    - BASE: no images (target of variant filenames)
    """
    return [
        {
            "id": "prod-abc",
            "sku": "ABC123",
            "name": "Oak Plank ABC123",
            "slug": "oak-plank-abc123",
            "primary_image_id": None,
            "gallery_image_ids": None,
        },
        {
            "id": "prod-xyz",
            "sku": "XYZ999",
            "name": "Grey Slate XYZ999",
            "slug": "grey-slate-xyz999",
            "primary_image_id": "img-1",
            "gallery_image_ids": None,
        },
        {
            "id": "prod-base",
            "sku": "BASE",
            "name": "Base Tile",
            "slug": "base-tile",
            "primary_image_id": None,
            "gallery_image_ids": None,
        },
    ]


@pytest.fixture
def sample_attachments_list() -> list:
    """Existing attachment img-1 (primary image of XYZ999) with its stored file."""
    return [
        {
            "id": "img-1",
            "product_id": "prod-xyz",
            "title": "XYZ999",
            "storage_path": "2025/01/aaaa1111-XYZ999.jpg",
            "url": "https://storage.test/product-images/2025/01/aaaa1111-XYZ999.jpg",
            "mime_type": "image/jpeg",
            "width": 800,
            "height": 600,
            "metadata": {},
            "created_at": "2025-01-10T10:00:00Z",
        },
    ]


@pytest.fixture
def catalog(mock_db, mock_supabase, sample_products_list, sample_attachments_list):
    """Mock database seeded with the sample catalog and img-1's file."""
    mock_supabase.set_table_data("products", sample_products_list)
    mock_supabase.set_table_data("product_images", sample_attachments_list)
    mock_supabase.bucket.files["2025/01/aaaa1111-XYZ999.jpg"] = b"existing"
    return mock_supabase


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(catalog):
    """
    Create FastAPI test client with the mocked, seeded database.

    Usage:
        def test_endpoint(test_client_with_mock_db, catalog):
            response = test_client_with_mock_db.get("/api/image-uploads/config")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
