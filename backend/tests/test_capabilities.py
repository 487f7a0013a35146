import pytest

from core.capabilities import capability_string, discover, parameter_contract
from models.resource import Allowance, ColumnMetadata, Operation, RelationKind, RelationMetadata


@pytest.fixture
def orders():
    return RelationMetadata(full_name="sales.orders", kind=RelationKind.TABLE, columns=[
        ColumnMetadata(name="id", is_primary_key=True, is_identity=True, is_nullable=False),
        ColumnMetadata(name="customer_id", is_nullable=False),
        ColumnMetadata(name="note"),
        ColumnMetadata(name="total", is_computed=True),
    ])


@pytest.fixture
def keyless():
    return RelationMetadata(full_name="sales.events", kind=RelationKind.TABLE, columns=[
        ColumnMetadata(name="kind"), ColumnMetadata(name="payload"),
    ])


@pytest.fixture
def view():
    return RelationMetadata(full_name="sales.big_orders", kind=RelationKind.VIEW, columns=[
        ColumnMetadata(name="id", is_primary_key=True),
    ])


def _ops(rows, name):
    return {r.operation for r in rows if r.name == name}


def test_discovery_operation_sets(orders, keyless, view):
    rows = discover([orders, keyless, view])
    assert _ops(rows, "sales.orders") == set(Operation)
    assert _ops(rows, "sales.events") == {Operation.CREATE, Operation.READ}
    assert _ops(rows, "sales.big_orders") == {Operation.READ}


def test_capability_strings(orders, keyless, view):
    assert capability_string(orders) == "CRUD"
    assert capability_string(keyless) == "CR"
    assert capability_string(view) == "R"

    rows = discover([orders, view])
    read_row = next(r for r in rows if r.name == "sales.orders" and r.operation == Operation.READ)
    assert read_row.capabilities == "CRUD"
    assert read_row.primary_keys == "id"
    view_row = next(r for r in rows if r.name == "sales.big_orders")
    assert view_row.source_type == RelationKind.VIEW
    assert view_row.capabilities == "R"


def test_create_contract_allowances(orders):
    contract = {p.name: p.allowance for p in parameter_contract(orders, Operation.CREATE)}
    assert contract == {
        "id": Allowance.PROHIBITED,
        "customer_id": Allowance.MANDATORY,
        "note": Allowance.OPTIONAL,
        "total": Allowance.PROHIBITED,
    }


def test_read_contract(orders):
    params = {p.name: p for p in parameter_contract(orders, Operation.READ)}
    assert set(params) == {"select_distinct", "where_clause", "selected_columns"}
    assert params["select_distinct"].type == "boolean"
    columns = params["selected_columns"]
    assert columns.default == ["id", "customer_id", "note", "total"]
    tags = {o.value: o.tag for o in columns.options}
    assert tags["id"] == "Primary key | Generated"
    assert tags["total"] == "Computed | Nullable"
    assert tags["customer_id"] == ""


def test_update_contract_has_prohibited_catch_all(orders):
    contract = {p.name: p.allowance for p in parameter_contract(orders, Operation.UPDATE)}
    assert contract["id"] == Allowance.MANDATORY
    assert contract["note"] == Allowance.OPTIONAL
    assert contract["*"] == Allowance.PROHIBITED


def test_delete_contract_only_keys(orders):
    contract = {p.name: p.allowance for p in parameter_contract(orders, Operation.DELETE)}
    assert contract == {"id": Allowance.MANDATORY, "*": Allowance.PROHIBITED}
