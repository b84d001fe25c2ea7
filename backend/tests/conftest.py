"""
Storefront Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests run without MongoDB, Cloudinary or network access.
How:   An in-memory async double stands in for the pymongo database, the
       asset host is replaced by a mock, and images are generated with
       Pillow so the normalization pipeline runs for real.

Fixture Hierarchy:
    Function-scoped:
    ├── fake_db:          FakeDatabase (in-memory async collections)
    ├── make_image:       factory for real JPEG/PNG bytes
    ├── make_upload:      factory for starlette UploadFile objects
    ├── mock_asset_host:  patched asset host recording uploads/deletes
    └── test_client:      HTTPX AsyncClient bound to the app, db overridden
"""

import os
import tempfile

# Override settings BEFORE any storefront import; the singletons read them
os.environ["MONGODB_URI"] = "mongodb://localhost:27017/storefront_test"
os.environ["CLOUDINARY_CLOUD_NAME"] = "test-cloud"
os.environ["CLOUDINARY_API_KEY"] = "test-key"
os.environ["CLOUDINARY_API_SECRET"] = "test-secret"
os.environ["MEMORY"] = "true"
os.environ["TEMP_DIR"] = tempfile.mkdtemp(prefix="storefront_test_")
os.environ["RETRY_MAX_ATTEMPTS"] = "2"
os.environ["LOG_LEVEL"] = "WARNING"

import copy
from io import BytesIO
from itertools import count
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from PIL import Image
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import Headers, UploadFile


# ══════════════════════════════════════════════════════════════════════════
# In-Memory Mongo Double
# ══════════════════════════════════════════════════════════════════════════

def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


def _project(doc: Dict[str, Any], projection: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    keep = {key for key, flag in projection.items() if flag}
    return {key: value for key, value in doc.items() if key == "_id" or key in keep}


class FakeCursor:
    """Supports the find().sort().limit().to_list() chain used by DocumentStore."""

    def __init__(self, docs: List[Dict[str, Any]], projection):
        self._docs = docs
        self._projection = projection
        self._limit = 0

    def sort(self, keys):
        # Stable sorts applied from the least significant key
        for key, direction in reversed(list(keys)):
            self._docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[: self._limit] if self._limit else self._docs
        return [_project(d, self._projection) for d in docs]


class FakeCollection:
    """The subset of AsyncCollection the application calls."""

    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique_fields: List[str] = []

    def _check_unique(self, doc: Dict[str, Any], ignore_id=None) -> None:
        for field in self.unique_fields:
            for other in self.docs:
                if other["_id"] != ignore_id and field in doc and other.get(field) == doc[field]:
                    raise DuplicateKeyError(f"E11000 duplicate key error {self.name}.{field}", 11000)

    async def create_index(self, keys, unique: bool = False, **kwargs):
        field = keys[0][0]
        if unique and field not in self.unique_fields:
            self.unique_fields.append(field)
        return f"{field}_1"

    async def insert_one(self, doc: Dict[str, Any]):
        self._check_unique(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query: Dict[str, Any], projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query: Optional[Dict[str, Any]] = None, projection=None):
        docs = [d for d in self.docs if _matches(d, query or {})]
        return FakeCursor(docs, projection)

    async def find_one_and_update(self, query, update, return_document=None):
        for doc in self.docs:
            if _matches(doc, query):
                changes = update.get("$set", {})
                self._check_unique(changes, ignore_id=doc["_id"])
                doc.update(copy.deepcopy(changes))
                return copy.deepcopy(doc)
        return None

    async def delete_one(self, query):
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


@pytest_asyncio.fixture
async def fake_db():
    """
    Provides an in-memory database with the production indexes.

    Usage:
        async def test_create(fake_db):
            await product_service.create(fake_db, data, files)
            assert len(fake_db["products"].docs) == 1
    """
    from storefront.database import ensure_indexes

    db = FakeDatabase()
    await ensure_indexes(db)
    return db


# ══════════════════════════════════════════════════════════════════════════
# Images and Uploads
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_image():
    """
    Factory for real encoded images.

    Usage:
        data = make_image(3000, 2000)              # JPEG
        data = make_image(500, 500, fmt="PNG", mode="RGBA")
    """

    def _make(width: int = 64, height: int = 48, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
        buf = BytesIO()
        color = (200, 80, 40, 128) if mode == "RGBA" else (200, 80, 40)
        Image.new(mode, (width, height), color).save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def make_upload(make_image):
    """Factory for starlette UploadFile objects as FastAPI hands them to routes."""

    def _make(
        data: Optional[bytes] = None,
        filename: str = "photo.jpg",
        content_type: str = "image/jpeg",
    ) -> UploadFile:
        payload = make_image() if data is None else data
        return UploadFile(
            file=BytesIO(payload),
            size=len(payload),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _make


@pytest.fixture
def mock_asset_host():
    """
    Replaces the asset host used by the content services.

    upload_file returns a distinct Cloudinary-style URL per call;
    delete_file reports success. Both are AsyncMocks, so tests can assert
    call counts and override return values or side effects.
    """
    counter = count(1)

    async def _upload(image):
        return f"https://res.cloudinary.com/test-cloud/image/upload/v1/asset{next(counter)}.jpg"

    host = SimpleNamespace(
        upload_file=AsyncMock(side_effect=_upload),
        delete_file=AsyncMock(return_value=True),
    )
    with patch("storefront.services.content_service.asset_service", host):
        yield host


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(fake_db):
    """
    Provides an async HTTP test client with the database dependency
    overridden by `fake_db`.

    Usage:
        async def test_counts(test_client):
            response = await test_client.get("/api/v1/base/get/count")
            assert response.status_code == 200
    """
    from storefront.database import get_database
    from storefront.main import app

    app.dependency_overrides[get_database] = lambda: fake_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
