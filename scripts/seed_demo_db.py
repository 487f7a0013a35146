#!/usr/bin/env python3
"""
Seed a local SQLite database with relations covering every capability shape.
Usage (from the repository root):
    python scripts/seed_demo_db.py
Creates: scripts/demo.db

Then point the connector at it with {"db_type": "sqlite", "file_path": "scripts/demo.db"}.
"""
import random
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

DB_PATH = Path(__file__).parent / "demo.db"

DDL = [
    # identity primary key -> CRUD, Create echoes via last_insert_rowid()
    """
    CREATE TABLE IF NOT EXISTS customers (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT    NOT NULL,
        email       TEXT    UNIQUE NOT NULL,
        country     TEXT,
        created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    # computed column -> prohibited on Create and Update
    """
    CREATE TABLE IF NOT EXISTS orders (
        id            INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id   INTEGER REFERENCES customers(id),
        order_date    TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        status        TEXT,
        quantity      INTEGER NOT NULL,
        unit_price    REAL    NOT NULL,
        total         REAL GENERATED ALWAYS AS (quantity * unit_price) VIRTUAL
    )""",
    # composite natural key -> CRUD, Create echoes by key equality
    """
    CREATE TABLE IF NOT EXISTS exchange_rates (
        currency    TEXT NOT NULL,
        rate_date   TEXT NOT NULL,
        rate        REAL NOT NULL,
        PRIMARY KEY (currency, rate_date)
    )""",
    # no key -> CR only
    """
    CREATE TABLE IF NOT EXISTS audit_events (
        event_type  TEXT,
        payload     TEXT,
        occurred_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
    # view -> R only
    """
    CREATE VIEW IF NOT EXISTS customer_totals AS
        SELECT c.id AS customer_id, c.name, SUM(o.total) AS lifetime_value
        FROM customers c LEFT JOIN orders o ON o.customer_id = c.id
        GROUP BY c.id, c.name
    """,
]

STATUSES = ['PENDING', 'PROCESSING', 'SHIPPED', 'CANCELLED', 'DELIVERED']
CURRENCIES = ['EUR', 'GBP', 'JPY', 'INR', 'CHF']
EVENT_TYPES = ['login', 'export', 'import', 'config_change']


def seed():
    conn = sqlite3.connect(DB_PATH)
    cur = conn.cursor()

    for stmt in DDL:
        cur.execute(stmt)

    for i in range(1, 51):
        cur.execute("INSERT OR IGNORE INTO customers(name, email, country, created_at) VALUES (?,?,?,?)",
                    (f"Customer {i}", f"user{i}@example.com",
                     random.choice(["US", "UK", "DE", "IN", "JP"]),
                     datetime.now() - timedelta(days=random.randint(10, 730))))

    for _ in range(200):
        cur.execute("INSERT INTO orders(customer_id, order_date, status, quantity, unit_price) VALUES (?,?,?,?,?)",
                    (random.randint(1, 50), datetime.now() - timedelta(days=random.randint(0, 365)),
                     random.choice(STATUSES), random.randint(1, 5), round(random.uniform(5, 500), 2)))

    for days_back in range(30):
        day = (datetime.now() - timedelta(days=days_back)).date().isoformat()
        for ccy in CURRENCIES:
            cur.execute("INSERT OR IGNORE INTO exchange_rates(currency, rate_date, rate) VALUES (?,?,?)",
                        (ccy, day, round(random.uniform(0.5, 150), 4)))

    for _ in range(100):
        cur.execute("INSERT INTO audit_events(event_type, payload, occurred_at) VALUES (?,?,?)",
                    (random.choice(EVENT_TYPES), '{"source":"seed"}',
                     datetime.now() - timedelta(minutes=random.randint(0, 10080))))

    conn.commit()
    conn.close()
    print(f"Demo database seeded: {DB_PATH}")
    print("   Relations: customers, orders, exchange_rates, audit_events, customer_totals (view)")


if __name__ == "__main__":
    seed()
