# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - An in-memory stand-in for the supabase-py Client (tables + storage)
#   with failure injection, so services run against real query chains
# - Pillow-generated photos
# - A wired ServiceContainer and an authenticated TestClient
# =============================================================================

import io
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from jose import jwt
from PIL import Image

TEST_JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
TEST_SUPABASE_URL = os.environ["SUPABASE_URL"]


# =============================================================================
# Fake Supabase: Tables
# =============================================================================

class FakeAPIError(Exception):
    """What the fake raises for an injected failure."""


@dataclass
class FailureRule:
    """Fail matching calls. `times=None` fails every matching call."""
    table: str
    op: str
    times: int | None = 1
    when: Callable[["FakeQuery"], bool] | None = None
    message: str = "injected failure"


# Child tables removed with their bowl, like ON DELETE CASCADE
CASCADES = {"bowls": ("bowl_finishes", "bowl_images")}


class FakeQuery:
    """Records one supabase-py query chain and runs it on execute()."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.count_mode: str | None = None
        self.filters: list[Callable[[dict], bool]] = []
        self.eq_values: dict[str, Any] = {}
        self.orders: list[tuple[str, bool]] = []
        self.range_bounds: tuple[int, int] | None = None
        self.limit_count: int | None = None

    # Operations

    def select(self, columns: str = "*", count: str | None = None):
        self.op = "select"
        self.count_mode = count
        return self

    def insert(self, data):
        self.op = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.op = "update"
        self.payload = data
        return self

    def delete(self):
        self.op = "delete"
        return self

    # Filters

    def eq(self, column: str, value):
        self.eq_values[column] = value
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def neq(self, column: str, value):
        self.filters.append(lambda row: str(row.get(column)) != str(value))
        return self

    def in_(self, column: str, values):
        allowed = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in allowed)
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, operator, pattern = part.split(".", 2)
            assert operator == "ilike"
            clauses.append((column, pattern.strip("%").lower()))

        def matches(row):
            return any(term in str(row.get(column) or "").lower() for column, term in clauses)

        self.filters.append(matches)
        return self

    # Modifiers

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self.range_bounds = (start, end)
        return self

    def limit(self, count: int):
        self.limit_count = count
        return self

    # Execution

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op))
        self.db.check_failure(self)
        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.db.new_row(self.table, item) for item in items]
            rows.extend(inserted)
            return SimpleNamespace(data=[dict(r) for r in inserted], count=None)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated, count=None)

        if self.op == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            for child in CASCADES.get(self.table, ()):
                ids = {str(row["id"]) for row in removed}
                self.db.tables[child] = [
                    r for r in self.db.tables.get(child, []) if str(r.get("bowl_id")) not in ids
                ]
            return SimpleNamespace(data=[dict(r) for r in removed], count=None)

        selected = [dict(row) for row in rows if self._matches(row)]
        for column, desc in reversed(self.orders):
            selected.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(selected)
        if self.range_bounds:
            start, end = self.range_bounds
            selected = selected[start:end + 1]
        if self.limit_count is not None:
            selected = selected[:self.limit_count]
        return SimpleNamespace(data=selected, count=total if self.count_mode else None)


# =============================================================================
# Fake Supabase: Storage
# =============================================================================

class FakeBucket:
    """storage.from_(bucket) file API."""

    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, file: bytes, file_options: dict | None = None):
        self.storage.upload_calls.append(path)
        if len(self.storage.upload_calls) in self.storage.fail_upload_calls:
            raise FakeAPIError(f"upload failed for {path}")
        if path in self.storage.objects and (file_options or {}).get("upsert") != "true":
            raise FakeAPIError(f"The resource already exists: {path}")
        self.storage.objects[path] = {
            "data": file,
            "content_type": (file_options or {}).get("content-type"),
        }
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def remove(self, paths: list[str]):
        self.storage.remove_calls.append(list(paths))
        if self.storage.should_fail_remove():
            raise FakeAPIError("remove failed")
        for path in paths:
            self.storage.objects.pop(path, None)
        return [{"name": p} for p in paths]

    def get_public_url(self, path: str) -> str:
        return f"{TEST_SUPABASE_URL}/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    """client.storage with one shared object namespace."""

    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.upload_calls: list[str] = []
        self.remove_calls: list[list[str]] = []
        self.fail_upload_calls: set[int] = set()
        self.fail_removes: int | None = None
        self.always_fail_removes = False
        self.buckets: list[SimpleNamespace] = [SimpleNamespace(id="bowl-images", name="bowl-images")]
        self.created_buckets: list[tuple[str, dict]] = []

    def from_(self, name: str) -> FakeBucket:
        return FakeBucket(self, name)

    def list_buckets(self):
        return list(self.buckets)

    def create_bucket(self, id: str, options: dict | None = None):
        self.buckets.append(SimpleNamespace(id=id, name=id))
        self.created_buckets.append((id, options or {}))
        return {"name": id}

    def fail_upload_on(self, *call_numbers: int):
        """Fail the n-th upload calls (1-based, counted across the test)."""
        self.fail_upload_calls.update(call_numbers)

    def fail_next_removes(self, times: int = 1):
        self.fail_removes = times

    def fail_all_removes(self):
        self.always_fail_removes = True

    def should_fail_remove(self) -> bool:
        if self.always_fail_removes:
            return True
        if self.fail_removes:
            self.fail_removes -= 1
            return True
        return False


# =============================================================================
# Fake Supabase: Client
# =============================================================================

class FakeSupabase:
    """Just enough of supabase.Client for the services under test."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple[str, str]] = []
        self.failures: list[FailureRule] = []
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str, times: int | None = 1, when=None):
        self.failures.append(FailureRule(table=table, op=op, times=times, when=when))

    def check_failure(self, query: FakeQuery) -> None:
        for rule in self.failures:
            if rule.table != query.table or rule.op != query.op:
                continue
            if rule.times is not None and rule.times <= 0:
                continue
            if rule.when is not None and not rule.when(query):
                continue
            if rule.times is not None:
                rule.times -= 1
            raise FakeAPIError(f"{rule.message}: {query.op} on {query.table}")

    def new_row(self, table: str, item: dict) -> dict:
        now = datetime.now(timezone.utc).isoformat()
        row = {"id": str(uuid.uuid4()), "created_at": now, **item}
        if table == "bowls":
            row.setdefault("updated_at", now)
        return row

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])

    def count_calls(self, table: str, op: str) -> int:
        return sum(1 for call in self.calls if call == (table, op))


# =============================================================================
# Image Helpers
# =============================================================================

def make_image_bytes(width: int, height: int, fmt: str = "JPEG", mode: str = "RGB", **save_kwargs) -> bytes:
    """Encode a solid-color image of the given size."""
    color = (120, 80, 40, 128) if mode == "RGBA" else (120, 80, 40)
    img = Image.new(mode, (width, height), color[: len(mode)])
    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def make_candidate(
    filename: str = "bowl.jpg",
    width: int = 640,
    height: int = 480,
    content_type: str = "image/jpeg",
    data: bytes | None = None,
):
    from core.models.pipeline import CandidateFile

    payload = data if data is not None else make_image_bytes(width, height)
    return CandidateFile.from_bytes(filename, content_type, payload)


def make_token(
    user_id: str | None,
    email: str | None = "turner@example.com",
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """HS256 access token shaped like the ones Supabase Auth issues."""
    claims: dict[str, Any] = {
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(time.time()) + expires_in,
    }
    if user_id is not None:
        claims["sub"] = user_id
    if email is not None:
        claims["email"] = email
    return jwt.encode(claims, secret, algorithm="HS256")


def seed_bowl(fake: FakeSupabase, user_id: str, **fields) -> dict:
    """Insert a bowl row directly."""
    row = fake.new_row("bowls", {
        "user_id": user_id,
        "wood_type": fields.pop("wood_type", "Maple"),
        "wood_source": fields.pop("wood_source", "Backyard tree"),
        "date_made": fields.pop("date_made", "2024-05-01"),
        "comments": fields.pop("comments", None),
        **fields,
    })
    fake.tables.setdefault("bowls", []).append(row)
    return row


def seed_image(fake: FakeSupabase, bowl_id: str, display_order: int, token: str | None = None) -> dict:
    """Insert a bowl_images row with all four variant paths."""
    token = token or uuid.uuid4().hex[:12]
    row: dict[str, Any] = {"bowl_id": bowl_id, "display_order": display_order}
    for variant in ("thumbnail", "medium", "full", "original"):
        path = f"bowls/{bowl_id}/{variant}/{token}.jpg"
        row[f"{variant}_path"] = path
        row[f"{variant}_url"] = f"{TEST_SUPABASE_URL}/storage/v1/object/public/bowl-images/{path}"
        fake.storage.objects[path] = {"data": b"x", "content_type": "image/jpeg"}
    row["image_url"] = row["medium_url"]
    row["storage_path"] = row["medium_path"]
    row["file_size"] = 1234
    row["original_dimensions"] = {"width": 640, "height": 480}
    row = fake.new_row("bowl_images", row)
    fake.tables.setdefault("bowl_images", []).append(row)
    return row


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def settings():
    """Settings with sequential photo processing for deterministic call order."""
    from app.config import Settings

    return Settings(IMAGE_PIPELINE_CONCURRENCY=1, SUPABASE_JWT_SECRET=TEST_JWT_SECRET)


@pytest.fixture
def supabase(fake_supabase):
    from lib.supabase_client import SupabaseClient

    return SupabaseClient(fake_supabase)


@pytest.fixture
def storage(supabase, settings):
    from core.services.storage_service import StorageService

    return StorageService(supabase, settings)


@pytest.fixture
def container(settings, supabase):
    from app.dependencies import build_container

    return build_container(settings, supabase=supabase)


@pytest.fixture
def user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def client(container):
    """TestClient running the real app around the fake-backed container."""
    from fastapi.testclient import TestClient

    from app.main import app

    app.state.services = container
    with TestClient(app) as test_client:
        yield test_client
    app.state.services = None
