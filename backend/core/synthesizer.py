"""
Statement synthesizer — turns (relation, operation, parameters) into a
parameterized SynthesizedStatement.

Relation and column identifiers come from introspected metadata; caller
parameter names are checked against it before they reach the SQL text.
Every value is bound. The Read ``where_clause`` is the single exception: it is
caller SQL appended verbatim.
"""
from typing import Any

from core.binder import SQL_NULL, SynthesizedStatement, normalize_value
from core.capabilities import SELECT_DISTINCT, SELECTED_COLUMNS, WHERE_CLAUSE
from core.dialects import Dialect
from core.errors import InvalidParameterError, MissingKeyError, UnsupportedOperationError
from models.resource import ExecutionKeys, Operation, RelationMetadata

PROJECTION_KEYS = (SELECTED_COLUMNS, SELECT_DISTINCT)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value) and value is not SQL_NULL


def _as_column_list(value: Any) -> list[str]:
    if value is None or value is SQL_NULL:
        return []
    if isinstance(value, str):
        return [c.strip() for c in value.split(",") if c.strip()]
    return [str(c) for c in value]


def _projection(dialect: Dialect, relation: RelationMetadata, selected: Any, distinct: Any) -> str:
    columns = _as_column_list(selected)
    unknown = [c for c in columns if relation.column(c) is None]
    if unknown:
        raise InvalidParameterError(f"Unknown column(s) for {relation.full_name}: {', '.join(unknown)}")
    projection = ", ".join(dialect.quote(c) for c in columns) if columns else "*"
    return f"DISTINCT {projection}" if _as_bool(distinct) else projection


def _split_projection(relation: RelationMetadata, params: dict[str, Any]) -> tuple[dict, dict]:
    """Separate echo-projection options from column values (a real column always wins)."""
    options, values = {}, {}
    for name, value in params.items():
        if name in PROJECTION_KEYS and relation.column(name) is None:
            options[name] = value
        else:
            values[name] = normalize_value(value)
    return options, values


def _check_columns(relation: RelationMetadata, names) -> None:
    unknown = [n for n in names if relation.column(n) is None]
    if unknown:
        raise InvalidParameterError(f"Unknown parameter(s) for {relation.full_name}: {', '.join(unknown)}")


def _equals(dialect: Dialect, column: str, token: str, value: Any) -> str:
    if value is SQL_NULL:
        return f"{dialect.quote(column)} IS NULL"
    return f"{dialect.quote(column)} = {token}"


def _key_filter(dialect: Dialect, stmt: SynthesizedStatement, keys: list[str], values: dict) -> str:
    return " AND ".join(f"{dialect.quote(pk)} = {stmt.bind(values[pk])}" for pk in keys)


def _require_keys(relation: RelationMetadata, keys: ExecutionKeys, values: dict) -> None:
    missing = [pk for pk in keys.primary_keys if values.get(pk, SQL_NULL) is SQL_NULL]
    if missing:
        raise MissingKeyError(relation.full_name, missing)


# ── Per-operation synthesis ──────────────────────────────────────────────────

def _create(dialect, relation, keys, params) -> SynthesizedStatement:
    options, values = _split_projection(relation, params)
    _check_columns(relation, values)
    blocked = [n for n in values if relation.column(n).is_identity or relation.column(n).is_computed]
    if blocked:
        raise InvalidParameterError(
            f"Generated or computed column(s) cannot be set on {relation.full_name}: {', '.join(blocked)}"
        )

    stmt = SynthesizedStatement()
    rel = relation.full_name
    tokens = {name: stmt.bind(value) for name, value in values.items()}
    if values:
        cols = ", ".join(dialect.quote(n) for n in values)
        stmt.add(f"INSERT INTO {rel} ({cols}) VALUES ({', '.join(tokens.values())})")
    else:
        stmt.add(f"INSERT INTO {rel} DEFAULT VALUES")

    if keys.identity_column:
        where = f"{dialect.quote(keys.identity_column)} = {dialect.last_identity()}"
    elif keys.primary_keys and all(values.get(pk, SQL_NULL) is not SQL_NULL for pk in keys.primary_keys):
        where = " AND ".join(f"{dialect.quote(pk)} = {tokens[pk]}" for pk in keys.primary_keys)
    else:
        # No natural key: match on everything supplied. Can return several rows.
        where = " AND ".join(_equals(dialect, n, tokens[n], v) for n, v in values.items())

    if where:
        projection = _projection(dialect, relation, options.get(SELECTED_COLUMNS), options.get(SELECT_DISTINCT))
        stmt.add(f"SELECT {projection} FROM {rel} WHERE {where}")
    return stmt


def _read(dialect, relation, keys, params) -> SynthesizedStatement:
    stmt = SynthesizedStatement()
    projection = _projection(dialect, relation, params.get(SELECTED_COLUMNS), params.get(SELECT_DISTINCT))
    sql = f"SELECT {projection} FROM {relation.full_name}"
    predicate = params.get(WHERE_CLAUSE)
    if isinstance(predicate, str) and predicate.strip():
        sql += f" WHERE {predicate.strip()}"
    stmt.add(sql)
    return stmt


def _update(dialect, relation, keys, params) -> SynthesizedStatement:
    values = {name: normalize_value(value) for name, value in params.items()}
    _require_keys(relation, keys, values)
    _check_columns(relation, values)

    changes = {n: v for n, v in values.items() if n not in keys.primary_keys}
    if not changes:
        raise InvalidParameterError(f"Nothing to update on {relation.full_name}: only key values were supplied")
    blocked = [n for n in changes if relation.column(n).is_identity or relation.column(n).is_computed]
    if blocked:
        raise InvalidParameterError(
            f"Generated or computed column(s) cannot be updated on {relation.full_name}: {', '.join(blocked)}"
        )

    stmt = SynthesizedStatement()
    rel = relation.full_name
    assignments = ", ".join(f"{dialect.quote(n)} = {stmt.bind(v)}" for n, v in changes.items())
    where = _key_filter(dialect, stmt, keys.primary_keys, values)
    stmt.add(f"UPDATE {dialect.single_row_prefix()}{rel} SET {assignments} WHERE {where}")
    echo = ", ".join(dialect.quote(n) for n in values)
    stmt.add(f"SELECT {echo} FROM {rel} WHERE {where}")
    return stmt


def _delete(dialect, relation, keys, params) -> SynthesizedStatement:
    values = {name: normalize_value(value) for name, value in params.items()}
    _require_keys(relation, keys, values)
    extra = [n for n in values if n not in keys.primary_keys]
    if extra:
        raise InvalidParameterError(
            f"Only primary key parameters are accepted for Delete on {relation.full_name}: {', '.join(extra)}"
        )

    stmt = SynthesizedStatement()
    rel = relation.full_name
    where = _key_filter(dialect, stmt, keys.primary_keys, values)
    # Echo the row before it disappears.
    stmt.add(f"SELECT * FROM {rel} WHERE {where}")
    stmt.add(f"DELETE {dialect.single_row_prefix()}FROM {rel} WHERE {where}")
    return stmt


_SYNTHESIZERS = {
    Operation.CREATE: _create,
    Operation.READ: _read,
    Operation.UPDATE: _update,
    Operation.DELETE: _delete,
}


def synthesize(
    operation: Operation,
    relation: RelationMetadata,
    keys: ExecutionKeys,
    params: dict[str, Any],
    dialect: Dialect,
) -> SynthesizedStatement:
    try:
        build = _SYNTHESIZERS[operation]
    except KeyError:
        raise UnsupportedOperationError(f"No statement synthesis for operation {operation!r}") from None
    return build(dialect, relation, keys, params or {})
