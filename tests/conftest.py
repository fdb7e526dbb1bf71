"""
Pytest configuration and fixtures for Chefdesk tests.
"""

import os
from typing import Any
from unittest.mock import MagicMock

import pytest

# Set test environment before importing chefdesk modules
os.environ["CHEFDESK_ENV"] = "development"
os.environ["CHEFDESK_LOG_PROMPTS"] = "0"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["SUPABASE_URL"] = "https://example.supabase.co"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-key"
os.environ["LANGCHAIN_TRACING_V2"] = "false"
os.environ["SCHEDULE_LAYOUT_STRATEGY"] = "openai"

from chefdesk.scheduling.entities import AvailableItem, Recipe  # noqa: E402
from chefdesk.scheduling.timemodel import TimeWindow  # noqa: E402


# ---------------------------------------------------------------------------
# In-memory PostgREST fake
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]]):
        self.data = data


class FakeQuery:
    """Chainable stand-in for the supabase table builder."""

    def __init__(self, db: "FakeDB", table: str):
        self._db = db
        self._table = table
        self._action = "select"
        self._payload: dict[str, Any] | None = None
        self._on_conflict: str | None = None
        self._filters: list = []
        self._order: tuple[str, bool] | None = None
        self._limit: int | None = None

    def select(self, *columns, **kwargs):
        self._action = "select"
        return self

    def upsert(self, row: dict[str, Any], on_conflict: str | None = None):
        self._action = "upsert"
        self._payload = dict(row)
        self._on_conflict = on_conflict
        return self

    def eq(self, column: str, value: Any):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: list[Any]):
        allowed = set(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._action))
        if self._action in self._db.fail_on or self._table in self._db.fail_on:
            raise RuntimeError(f"{self._table} unavailable")

        rows = self._db.tables.setdefault(self._table, [])
        if self._action == "upsert":
            key = self._on_conflict
            for i, row in enumerate(rows):
                if key and row.get(key) == self._payload.get(key):
                    rows[i] = self._payload
                    break
            else:
                rows.append(self._payload)
            return FakeResponse([dict(self._payload)])

        result = [row for row in rows if all(f(row) for f in self._filters)]
        if self._order:
            column, desc = self._order
            result.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
        if self._limit is not None:
            result = result[: self._limit]
        return FakeResponse([dict(row) for row in result])


class FakeDB:
    """Tables are lists of row dicts. Add an action or table name to fail_on to make it raise."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def writes(self, table: str = "prep_schedules") -> int:
        return sum(1 for t, action in self.calls if t == table and action == "upsert")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.in_.return_value = mock_table
    mock_table.order.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def window():
    return TimeWindow(start="06:00", end="17:00")


@pytest.fixture
def menu_item_rows():
    """menu_items rows as Supabase returns them."""
    return [
        {"id": "a", "chef_id": "chef-1", "name": "Braised Short Rib", "cuisine_type": "American", "is_available": True},
        {"id": "b", "chef_id": "chef-1", "name": "Tomato Soup", "cuisine_type": "Italian", "is_available": True},
        {"id": "d", "chef_id": "chef-1", "name": "Caesar Salad", "cuisine_type": "Italian", "is_available": True},
        {"id": "x", "chef_id": "chef-1", "name": "Old Special", "cuisine_type": None, "is_available": False},
        {"id": "z", "chef_id": "chef-2", "name": "Someone Else's Dish", "cuisine_type": None, "is_available": True},
    ]


@pytest.fixture
def recipe_rows():
    return [
        {
            "id": "r-a",
            "menu_item_id": "a",
            "prep_time_minutes": 10,
            "cook_time_minutes": 20,
            "cooking_methods": ["oven"],
            "ingredients": [{"amount": "2 lb", "name": "short rib"}],
            "procedure": "Sear, then braise.",
        },
        {
            "id": "r-b",
            "menu_item_id": "b",
            "prep_time_minutes": 5,
            "cook_time_minutes": 15,
            "cooking_methods": ["stovetop"],
            "ingredients": None,
            "procedure": None,
        },
    ]


@pytest.fixture
def sample_items():
    """Available items: two with recipes, one without."""
    return [
        AvailableItem(
            id="a",
            name="Braised Short Rib",
            cuisine_type="American",
            recipe=Recipe(menu_item_id="a", prep_time_minutes=10, cook_time_minutes=20, cooking_methods=["oven"]),
        ),
        AvailableItem(
            id="b",
            name="Tomato Soup",
            cuisine_type="Italian",
            recipe=Recipe(menu_item_id="b", prep_time_minutes=5, cook_time_minutes=15, cooking_methods=["stovetop"]),
        ),
        AvailableItem(id="d", name="Caesar Salad", cuisine_type="Italian"),
    ]
