import sqlite3

import pytest
from sqlalchemy.exc import OperationalError

from core.errors import SchemaIntrospectionError
from core.metadata_store import MetadataStore, fold_relations
from models.resource import RelationKind


def _row(table, column, table_type="BASE TABLE", nullable="YES", identity="NO", computed=0):
    return {
        "table_catalog": "db", "table_schema": "sales", "table_name": table, "table_type": table_type,
        "column_name": column, "is_nullable": nullable, "is_identity": identity, "is_computed": computed,
    }


def test_fold_groups_consecutive_rows_by_relation():
    rows = [
        _row("customers", "id", nullable="NO", identity="YES"),
        _row("customers", "name"),
        _row("orders", "id", nullable="NO"),
        _row("orders", "total", computed=1),
        _row("v_orders", "id", table_type="VIEW"),
    ]
    pks = {("db", "sales", "customers", "id"), ("db", "sales", "orders", "id")}

    relations = fold_relations(rows, pks)

    assert [r.full_name for r in relations] == ["sales.customers", "sales.orders", "sales.v_orders"]
    customers, orders, view = relations
    assert [c.name for c in customers.columns] == ["id", "name"]
    assert customers.columns[0].is_identity and customers.columns[0].is_primary_key
    assert not customers.columns[0].is_nullable
    assert orders.columns[1].is_computed
    assert view.kind == RelationKind.VIEW
    assert view.primary_keys == []


def test_sqlite_introspection(spy_driver, sqlite_params):
    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver)
    store.ensure_fresh()

    names = {r.full_name for r in store.relations}
    assert names == {"main.customers", "main.orders", "main.exchange_rates", "main.audit_events", "main.big_orders"}

    customers = store.lookup("main.customers")
    assert customers.kind == RelationKind.TABLE
    cid = customers.column("id")
    assert cid.is_primary_key and cid.is_identity and not cid.is_nullable
    assert not customers.column("name").is_nullable
    assert customers.column("email").is_nullable

    assert store.lookup("main.orders").column("total").is_computed
    rates = store.lookup("main.exchange_rates")
    assert rates.primary_keys == ["currency", "rate_date"]
    assert not any(c.is_identity for c in rates.columns)
    assert store.lookup("main.big_orders").kind == RelationKind.VIEW
    spy_driver.close()


def test_without_rowid_integer_key_is_not_identity(spy_driver, temp_sqlite_db, sqlite_params):
    conn = sqlite3.connect(temp_sqlite_db)
    conn.execute("CREATE TABLE codes (id INTEGER PRIMARY KEY, label TEXT) WITHOUT ROWID")
    conn.commit()
    conn.close()

    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver)
    store.ensure_fresh()
    cid = store.lookup("main.codes").column("id")
    assert cid.is_primary_key and not cid.is_identity
    assert store.execution_keys("main.codes").identity_column is None
    assert store.lookup("main.customers").column("id").is_identity
    spy_driver.close()


def test_no_requery_within_ttl_and_force_always_requeries(spy_driver, sqlite_params, clock):
    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver, ttl_ms=600_000, clock=clock)

    store.ensure_fresh()
    clock.advance(1)
    store.ensure_fresh()
    assert spy_driver.fetch_calls == 2

    store.ensure_fresh(force=True)
    assert spy_driver.fetch_calls == 4

    clock.advance(601)
    store.ensure_fresh()
    assert spy_driver.fetch_calls == 6
    spy_driver.close()


def test_failed_refresh_keeps_previous_snapshot(spy_driver, sqlite_params, monkeypatch):
    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver)
    store.ensure_fresh()
    before = store.relations

    def boom(sql, params=None):
        raise OperationalError(sql, params, Exception("disk I/O error"))

    monkeypatch.setattr(spy_driver, "fetch_all", boom)
    with pytest.raises(SchemaIntrospectionError):
        store.ensure_fresh(force=True)
    assert store.relations is before
    assert store.lookup("main.customers") is not None
    spy_driver.close()


def test_execution_keys_are_memoized_and_invalidated(spy_driver, sqlite_params):
    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver)
    store.ensure_fresh()

    keys = store.execution_keys("main.customers")
    assert keys.primary_keys == ["id"]
    assert keys.identity_column == "id"
    assert store.execution_keys("main.customers") is keys
    assert store.execution_keys("main.audit_events").primary_keys == []

    store.invalidate()
    assert store.execution_keys("main.customers") is None
    assert store.relations == []
    spy_driver.close()


def test_schema_filter(spy_driver, sqlite_params):
    spy_driver.open(sqlite_params)
    store = MetadataStore(spy_driver)
    store.schema_filter = "reporting"
    store.ensure_fresh()
    assert store.relations == []
    spy_driver.close()
