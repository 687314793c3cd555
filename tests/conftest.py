"""Shared test configuration and fixtures.

The Airtable directory is replaced by an in-memory ``UserDirectory`` injected
through ``app.dependency_overrides``; Stripe calls are patched per test.
"""

import os

# Configure settings before the application is imported.
os.environ.setdefault("GPT_API_KEY", "test-api-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_PRICE_ID", "price_test_default")
os.environ.setdefault("ENVIRONMENT", "test")

import hashlib
import hmac
import itertools
import json
import time
from collections.abc import AsyncGenerator, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from paywall.api.deps import get_directory
from paywall.config import settings
from paywall.directory import UserDirectory, UserField, UserRecord, encode_fields
from paywall.directory.fields import Predicate, Sort
from paywall.errors import DirectoryError
from paywall.main import app, build_rate_limiters

API_KEY = "test-api-key"


class InMemoryDirectory(UserDirectory):
    """Dict-backed directory that evaluates the same predicates as Airtable."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.fail_on: set[str] = set()
        self.fail_for_email: set[str] = set()
        self.writes: list[tuple[str, str]] = []
        self._ids = itertools.count(1)

    def _check(self, op: str, fields: Mapping[str, Any] | None = None) -> None:
        if op in self.fail_on:
            raise DirectoryError(f"simulated {op} failure")
        email = str((fields or {}).get(UserField.EMAIL, "")).lower()
        if email and email in self.fail_for_email:
            raise DirectoryError(f"simulated failure for {email}")

    def add(self, **fields: Any) -> UserRecord:
        """Insert a row directly, bypassing failure injection and write log."""
        record_id = f"rec{next(self._ids):05d}"
        self.rows[record_id] = encode_fields(fields)
        return self.get(record_id)

    def get(self, record_id: str) -> UserRecord:
        return UserRecord.from_airtable({"id": record_id, "fields": self.rows[record_id]})

    async def find_one(self, where: Predicate) -> UserRecord | None:
        records = await self.list_records(where, max_records=1)
        return records[0] if records else None

    async def list_records(
        self,
        where: Predicate | None = None,
        sort: Sequence[Sort] = (),
        max_records: int | None = None,
    ) -> list[UserRecord]:
        self._check("list")
        rows = [
            (record_id, fields)
            for record_id, fields in self.rows.items()
            if where is None or where.matches(fields)
        ]
        for s in reversed(sort):
            rows.sort(key=lambda row: str(row[1].get(s.field, "")), reverse=s.descending)
        if max_records is not None:
            rows = rows[:max_records]
        for record_id, fields in rows:
            self._check("read", fields)
        return [UserRecord.from_airtable({"id": i, "fields": f}) for i, f in rows]

    async def create(self, fields: Mapping[str, Any]) -> UserRecord:
        self._check("create", fields)
        record = self.add(**{str(k): v for k, v in fields.items()})
        self.writes.append(("create", record.id))
        return record

    async def update(self, record_id: str, fields: Mapping[str, Any]) -> UserRecord:
        self._check("update", self.rows.get(record_id))
        if record_id not in self.rows:
            raise DirectoryError("User directory returned status 404")
        self.rows[record_id].update(encode_fields(fields))
        self.writes.append(("update", record_id))
        return self.get(record_id)

    async def delete(self, record_id: str) -> None:
        self._check("delete", self.rows.get(record_id))
        if self.rows.pop(record_id, None) is None:
            raise DirectoryError("User directory returned status 404")
        self.writes.append(("delete", record_id))


def sign_webhook(payload: bytes, secret: str | None = None, timestamp: int | None = None) -> str:
    """Build a valid ``Stripe-Signature`` header for ``payload``."""
    secret = secret or settings.stripe_webhook_secret
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def webhook_payload(event_type: str, data_object: dict[str, Any]) -> bytes:
    return json.dumps(
        {
            "id": "evt_test_123",
            "object": "event",
            "type": event_type,
            "data": {"object": data_object},
        }
    ).encode()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory()


@pytest.fixture
def active_user(directory: InMemoryDirectory, now: datetime) -> UserRecord:
    """A paying user whose period ends in thirty days."""
    return directory.add(
        **{
            UserField.EMAIL: "Paid.User@Example.com",
            UserField.PLAN: "pro",
            UserField.STATUS: "active",
            UserField.STRIPE_CUSTOMER_ID: "cus_active_123",
            UserField.SUBSCRIPTION_ID: "sub_active_123",
            UserField.CURRENT_PERIOD_END: now + timedelta(days=30),
            UserField.CREATED_AT: now - timedelta(days=10),
            UserField.UPDATED_AT: now - timedelta(days=10),
        }
    )


@pytest.fixture
def pending_user(directory: InMemoryDirectory, now: datetime) -> UserRecord:
    """A user who started checkout but has not paid yet."""
    return directory.add(
        **{
            UserField.EMAIL: "pending@example.com",
            UserField.PLAN: "pro",
            UserField.STATUS: "pending",
            UserField.STRIPE_CUSTOMER_ID: "cus_pending_123",
            UserField.CREATED_AT: now - timedelta(days=1),
            UserField.UPDATED_AT: now - timedelta(days=1),
        }
    )


@pytest.fixture(autouse=True)
def fresh_rate_limiters():
    """Limiter state lives on the app; reset it so tests do not leak counts."""
    build_rate_limiters(app)
    yield
    build_rate_limiters(app)


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"X-API-Key": API_KEY}


@pytest_asyncio.fixture
async def client(directory: InMemoryDirectory) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the in-memory directory."""
    app.dependency_overrides[get_directory] = lambda: directory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()
