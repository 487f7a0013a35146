"""
Capability deriver — which operations a relation supports and what
parameters each operation accepts, from structural metadata alone.
"""
from models.resource import (
    Allowance,
    ColumnOption,
    DiscoveryRow,
    Operation,
    ParameterDescriptor,
    RelationKind,
    RelationMetadata,
)

CATCH_ALL = "*"
SELECT_DISTINCT = "select_distinct"
WHERE_CLAUSE = "where_clause"
SELECTED_COLUMNS = "selected_columns"


def supported_operations(relation: RelationMetadata) -> list[Operation]:
    if relation.kind != RelationKind.TABLE:
        return [Operation.READ]
    if relation.primary_keys:
        return [Operation.CREATE, Operation.READ, Operation.UPDATE, Operation.DELETE]
    return [Operation.CREATE, Operation.READ]


def capability_string(relation: RelationMetadata) -> str:
    if relation.kind != RelationKind.TABLE:
        return "R"
    return "CRUD" if relation.primary_keys else "CR"


def discover(relations: list[RelationMetadata]) -> list[DiscoveryRow]:
    """One row per (relation, supported operation)."""
    rows: list[DiscoveryRow] = []
    for relation in relations:
        pk_list = ", ".join(relation.primary_keys)
        for op in supported_operations(relation):
            rows.append(DiscoveryRow(
                name=relation.full_name,
                operation=op,
                source_type=relation.kind,
                primary_keys=pk_list,
                capabilities=capability_string(relation) if op == Operation.READ else None,
            ))
    return rows


# ── Parameter contracts ──────────────────────────────────────────────────────

def _create_contract(relation: RelationMetadata) -> list[ParameterDescriptor]:
    params = []
    for col in relation.columns:
        if col.is_identity or col.is_computed:
            allowance = Allowance.PROHIBITED
        elif not col.is_nullable:
            allowance = Allowance.MANDATORY
        else:
            allowance = Allowance.OPTIONAL
        params.append(ParameterDescriptor(name=col.name, type="column", allowance=allowance, description=col.tag))
    return params


def _read_contract(relation: RelationMetadata) -> list[ParameterDescriptor]:
    return [
        ParameterDescriptor(
            name=SELECT_DISTINCT, type="boolean", allowance=Allowance.OPTIONAL, default=False,
            description="Return distinct rows only",
        ),
        ParameterDescriptor(
            name=WHERE_CLAUSE, type="string", allowance=Allowance.OPTIONAL, default="",
            description="SQL predicate appended verbatim after WHERE",
        ),
        ParameterDescriptor(
            name=SELECTED_COLUMNS, type="multiselect", allowance=Allowance.OPTIONAL,
            default=[c.name for c in relation.columns],
            description="Columns to return; all columns when empty",
            options=[ColumnOption(value=c.name, tag=c.tag) for c in relation.columns],
        ),
    ]


def _update_contract(relation: RelationMetadata) -> list[ParameterDescriptor]:
    params = [
        ParameterDescriptor(
            name=col.name, type="column", description=col.tag,
            allowance=Allowance.MANDATORY if col.is_primary_key else Allowance.OPTIONAL,
        )
        for col in relation.columns
    ]
    params.append(ParameterDescriptor(name=CATCH_ALL, type="column", allowance=Allowance.PROHIBITED))
    return params


def _delete_contract(relation: RelationMetadata) -> list[ParameterDescriptor]:
    params = [
        ParameterDescriptor(name=col.name, type="column", allowance=Allowance.MANDATORY, description=col.tag)
        for col in relation.columns
        if col.is_primary_key
    ]
    params.append(ParameterDescriptor(name=CATCH_ALL, type="column", allowance=Allowance.PROHIBITED))
    return params


_CONTRACTS = {
    Operation.CREATE: _create_contract,
    Operation.READ: _read_contract,
    Operation.UPDATE: _update_contract,
    Operation.DELETE: _delete_contract,
}


def parameter_contract(relation: RelationMetadata, operation: Operation) -> list[ParameterDescriptor]:
    return _CONTRACTS[operation](relation)
