# tests/conftest.py
import copy
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.clients.supabase import get_store
from app.core.exceptions import ConflictError
from app.core.redis import get_redis_client
from app.db.session import Base
from app.main import app
from app.models import affiliate, order, menu  # register every table on Base.metadata
from app.services.auth import create_access_token

SESSION_ID = "test-session-1"


# --- In-memory stand-ins for the database gateway and Redis ---

class FakeStore:
    """
    Table store with the same call surface as SupabaseClient. Supports the
    filters the application uses and the `affiliates!affiliate_id(...)` embed.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        # table name -> exception raised by any call touching that table
        self.failures: dict[str, Exception] = {}
        self.rpc_result: Any = None
        self.rpc_error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    def seed(self, table: str, *rows: dict) -> list[dict]:
        stored = [self._with_defaults(table, row) for row in rows]
        self.tables.setdefault(table, []).extend(stored)
        return stored

    # --- helpers ---

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def _with_defaults(self, table: str, row: dict) -> dict:
        row = copy.deepcopy(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", self._now())
        row.setdefault("updated_at", row["created_at"])
        if table == "affiliates":
            row.setdefault("status", "active")
        if table == "orders":
            row.setdefault("status", "pending")
        return row

    def _check(self, table: str, op: str) -> None:
        self.calls.append((op, table))
        if table in self.failures:
            raise self.failures[table]

    @staticmethod
    def _matches(row: dict, eq: dict | None, not_null) -> bool:
        for column, value in (eq or {}).items():
            if row.get(column) != value:
                return False
        return all(row.get(column) is not None for column in not_null or ())

    def _render(self, row: dict, columns: str) -> dict:
        if columns == "*" or columns.startswith("*,"):
            rendered = copy.deepcopy(row)
            if "affiliates!affiliate_id" in columns:
                owner = next(
                    (a for a in self.tables.get("affiliates", []) if a["id"] == row.get("affiliate_id")),
                    None,
                )
                rendered["affiliates"] = (
                    {"name": owner["name"], "referral_code": owner["referral_code"]} if owner else None
                )
            return rendered
        return {column: copy.deepcopy(row.get(column)) for column in columns.split(",")}

    # --- gateway surface ---

    async def select(self, table, columns="*", eq=None, not_null=None, order_by=None, ascending=True, limit=None):
        self._check(table, "select")
        rows = [r for r in self.tables.get(table, []) if self._matches(r, eq, not_null)]
        if order_by:
            rows = sorted(rows, key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=not ascending)
        if limit is not None:
            rows = rows[:limit]
        return [self._render(r, columns) for r in rows]

    async def insert(self, table, rows, columns="*"):
        self._check(table, "insert")
        existing = self.tables.setdefault(table, [])
        created = []
        for row in rows:
            row = self._with_defaults(table, row)
            if table == "affiliates" and any(a["referral_code"] == row["referral_code"] for a in existing):
                raise ConflictError(
                    'duplicate key value violates unique constraint "affiliates_referral_code_key"',
                    code="23505",
                )
            existing.append(row)
            created.append(row)
        return [self._render(r, columns) for r in created]

    async def update(self, table, values, eq, columns="*"):
        self._check(table, "update")
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, eq, None):
                row.update(copy.deepcopy(values))
                row["updated_at"] = self._now()
                updated.append(row)
        return [self._render(r, columns) for r in updated]

    async def delete(self, table, eq):
        self._check(table, "delete")
        rows = self.tables.get(table, [])
        deleted = [r for r in rows if self._matches(r, eq, None)]
        self.tables[table] = [r for r in rows if r not in deleted]
        return deleted

    async def rpc(self, function, params=None):
        self.calls.append(("rpc", function))
        if self.rpc_error is not None:
            raise self.rpc_error
        return self.rpc_result


class FakeRedis:
    """The subset of redis.asyncio.Redis the application uses (decode_responses=True)."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.expirations: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        if ex is not None:
            self.expirations[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.expirations.pop(key, None)
        return removed


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# --- Catalog fixtures ---

@pytest.fixture
def cake_row() -> dict:
    """Base 150, one +20 variation, two +10 add-ons."""
    return {
        "id": "item-cake",
        "name": "Ube Cake",
        "description": "Purple yam layer cake",
        "base_price": 150,
        "category": "cakes",
        "image": None,
        "popular": True,
        "available": True,
        "variations": [
            {"id": "var-slice", "name": "Slice", "price": 0},
            {"id": "var-large", "name": "Large", "price": 20},
        ],
        "add_ons": [
            {"id": "addon-cream", "name": "Whipped Cream", "price": 10, "category": "toppings"},
            {"id": "addon-berries", "name": "Berries", "price": 10, "category": "toppings"},
        ],
        "discount_price": None,
        "discount_start_date": None,
        "discount_end_date": None,
        "discount_active": False,
    }


@pytest.fixture
def seeded_store(store: FakeStore, cake_row: dict) -> FakeStore:
    store.seed("menu_items", cake_row)
    store.seed(
        "menu_items",
        {
            "id": "item-leche",
            "name": "Leche Flan",
            "base_price": 90,
            "category": "desserts",
            "available": True,
            "variations": [],
            "add_ons": [],
        },
        {
            "id": "item-sold-out",
            "name": "Mango Float",
            "base_price": 120,
            "category": "desserts",
            "available": False,
            "variations": [],
            "add_ons": [],
        },
    )
    store.seed(
        "payment_methods",
        {"id": "gcash", "name": "GCash", "account_number": "0917", "account_name": "Sweet Quest", "active": True, "sort_order": 1},
        {"id": "bank", "name": "Bank Transfer", "active": True, "sort_order": 2},
        {"id": "old", "name": "Old Wallet", "active": False, "sort_order": 0},
    )
    store.seed(
        "affiliates",
        {"id": "aff-maria", "name": "Maria Santos", "referral_code": "ABC123", "status": "active"},
        {"id": "aff-jose", "name": "Jose Cruz", "referral_code": "JOSE77", "status": "suspended"},
    )
    return store


# --- HTTP client ---

@pytest.fixture
async def client(store: FakeStore, fake_redis: FakeRedis):
    """Client for the FastAPI app with the gateway and Redis replaced by in-memory fakes."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_redis_client] = lambda: fake_redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def session_headers() -> dict:
    return {"X-Session-ID": SESSION_ID}


@pytest.fixture
def admin_auth_headers() -> dict:
    token = create_access_token({"sub": "admin"})
    return {"Authorization": f"Bearer {token}"}


# --- SQLite for the schema models ---

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Session:
    """A clean schema for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
