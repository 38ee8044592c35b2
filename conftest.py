"""Shared fixtures: a Flask app wired to an in-memory Supabase stand-in."""

import copy
from types import SimpleNamespace

import pytest

from loanpro import create_app


class FakeQuery:
    """Chainable subset of the supabase-py query builder, backed by lists of dicts."""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.action = "select"
        self.payload = None
        self.filters = []
        self.ordering = None
        self.row_limit = None

    def select(self, *_columns):
        self.action = "select"
        return self

    def insert(self, rows):
        self.action, self.payload = "insert", rows
        return self

    def upsert(self, rows):
        self.action, self.payload = "upsert", rows
        return self

    def update(self, values):
        self.action, self.payload = "update", values
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        rows = self.store.setdefault(self.table, [])
        if self.action in ("insert", "upsert"):
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            new_rows = copy.deepcopy(new_rows)
            for new in new_rows:
                existing = next((r for r in rows if "id" in new and r.get("id") == new["id"]), None)
                if existing is not None and self.action == "upsert":
                    existing.update(new)
                else:
                    rows.append(new)
            return SimpleNamespace(data=copy.deepcopy(new_rows), count=len(new_rows))

        matched = [r for r in rows if self._matches(r)]
        if self.action == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
        elif self.action == "delete":
            self.store[self.table] = [r for r in rows if not self._matches(r)]
        else:
            if self.ordering:
                column, desc = self.ordering
                matched = sorted(matched, key=lambda r: str(r.get(column) or ""), reverse=desc)
            if self.row_limit is not None:
                matched = matched[:self.row_limit]
        return SimpleNamespace(data=copy.deepcopy(matched), count=len(matched))


class FakeSupabase:
    def __init__(self, data=None):
        self.store = copy.deepcopy(data or {})

    def table(self, name):
        return FakeQuery(self.store, name)

    def rows(self, name):
        return self.store.get(name, [])


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def app(supabase):
    app = create_app({
        "TESTING": True,
        "EMAIL_USER": None,
        "EMAIL_PASSWORD": None,
    })
    app.extensions["supabase"] = supabase
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app, supabase):
    """Load the demo dataset into the fake database."""
    from loanpro.sample_data import seed
    with app.app_context():
        seed()
    return supabase
