import os
import sys

# Add the parent directory (backend) to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
import sqlite3
import tempfile
from fastapi.testclient import TestClient

from core.connector import Connector
from core.driver import SqlAlchemyDriver
from main import app
from models.connection import ConnectionParameters

SCHEMA = [
    "CREATE TABLE customers (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL, email TEXT, country TEXT);",
    "CREATE TABLE orders (id INTEGER PRIMARY KEY, customer_id INTEGER NOT NULL, quantity INTEGER NOT NULL, "
    "unit_price REAL NOT NULL, total REAL GENERATED ALWAYS AS (quantity * unit_price) VIRTUAL);",
    "CREATE TABLE exchange_rates (currency TEXT NOT NULL, rate_date TEXT NOT NULL, rate REAL NOT NULL, "
    "PRIMARY KEY (currency, rate_date));",
    "CREATE TABLE audit_events (event_type TEXT, payload TEXT);",
    "CREATE VIEW big_orders AS SELECT id, customer_id, total FROM orders WHERE total > 100;",
    "INSERT INTO customers (name, email, country) VALUES ('Test User', 'test@example.com', 'US');",
    "INSERT INTO customers (name, email, country) VALUES ('Ada O''Neil', NULL, 'IE');",
    "INSERT INTO orders (customer_id, quantity, unit_price) VALUES (1, 2, 99.5);",
    "INSERT INTO orders (customer_id, quantity, unit_price) VALUES (2, 1, 10.0);",
    "INSERT INTO exchange_rates VALUES ('EUR', '2024-01-01', 1.1);",
]


class SpyDriver(SqlAlchemyDriver):
    """Real driver that counts introspection queries and statement executions."""

    def __init__(self):
        super().__init__()
        self.fetch_calls = 0
        self.execute_calls = 0

    def fetch_all(self, sql, params=None):
        self.fetch_calls += 1
        return super().fetch_all(sql, params)

    def execute(self, sql, params=None, stream=False):
        self.execute_calls += 1
        return super().execute(sql, params, stream)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def temp_sqlite_db():
    fd, path = tempfile.mkstemp(suffix=".db")
    try:
        conn = sqlite3.connect(path)
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
        conn.close()
        yield path
    finally:
        os.close(fd)
        os.remove(path)


@pytest.fixture
def sqlite_params(temp_sqlite_db):
    return ConnectionParameters(db_type="sqlite", file_path=temp_sqlite_db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def spy_driver():
    return SpyDriver()


@pytest.fixture
def connector(spy_driver, clock):
    c = Connector(driver=spy_driver, ttl_ms=600_000, clock=clock)
    yield c
    c.unload()
