"""
Metadata store — TTL cache of relation/column metadata discovered from the
live schema, plus the per-relation execution keys derived from it.
"""
import logging
import time
from typing import Callable, Optional
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from core.errors import ConnectorError, SchemaIntrospectionError
from models.resource import ColumnMetadata, ExecutionKeys, RelationKind, RelationMetadata

logger = logging.getLogger(__name__)


class MetadataCache(BaseModel):
    relations: list[RelationMetadata] = Field(default_factory=list)
    last_refreshed: Optional[float] = None      # clock() reading, seconds

    def index(self) -> dict[str, RelationMetadata]:
        return {r.full_name: r for r in self.relations}


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().upper() in ("1", "YES", "Y", "TRUE", "T")
    return bool(value)


def fold_relations(rows: list[dict], primary_keys: set[tuple]) -> list[RelationMetadata]:
    """Group (relation, column) rows, ordered by relation, into RelationMetadata records.

    A new record starts whenever the relation name differs from the previous row's.
    """
    relations: list[RelationMetadata] = []
    current: Optional[RelationMetadata] = None
    for row in rows:
        full_name = f"{row['table_schema']}.{row['table_name']}"
        if current is None or current.full_name != full_name:
            current = RelationMetadata(full_name=full_name, kind=RelationKind.from_catalog(row["table_type"]))
            relations.append(current)
        key = (row["table_catalog"], row["table_schema"], row["table_name"], row["column_name"])
        current.columns.append(ColumnMetadata(
            name=row["column_name"],
            is_primary_key=key in primary_keys,
            is_identity=_flag(row["is_identity"]),
            is_computed=_flag(row["is_computed"]),
            is_nullable=_flag(row["is_nullable"]),
        ))
    return relations


class MetadataStore:
    def __init__(self, driver, ttl_ms: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.driver = driver
        self.ttl_ms = settings.METADATA_TTL_MS if ttl_ms is None else ttl_ms
        self.clock = clock
        self._cache = MetadataCache()
        self._index: dict[str, RelationMetadata] = {}
        self._keys: dict[str, ExecutionKeys] = {}
        self.schema_filter: Optional[str] = None

    @property
    def relations(self) -> list[RelationMetadata]:
        return self._cache.relations

    @property
    def last_refreshed(self) -> Optional[float]:
        return self._cache.last_refreshed

    def is_stale(self) -> bool:
        if self._cache.last_refreshed is None:
            return True
        return (self.clock() - self._cache.last_refreshed) * 1000 > self.ttl_ms

    def ensure_fresh(self, force: bool = False) -> None:
        if not force and not self.is_stale():
            return
        dialect = self.driver.dialect
        if dialect is None:
            raise SchemaIntrospectionError("No open connection to introspect")

        t0 = time.time()
        try:
            pk_rows = self.driver.fetch_all(dialect.primary_key_query)
            col_rows = self.driver.fetch_all(dialect.columns_query)
        except (SQLAlchemyError, ConnectorError) as e:
            logger.warning("Schema introspection failed, keeping previous snapshot: %s", e)
            raise SchemaIntrospectionError(f"Schema introspection failed: {e}") from e

        primary_keys = {
            (r["table_catalog"], r["table_schema"], r["table_name"], r["column_name"]) for r in pk_rows
        }
        relations = fold_relations(col_rows, primary_keys)
        if self.schema_filter:
            relations = [r for r in relations if r.full_name.split(".", 1)[0] == self.schema_filter]

        # Swap everything in one go; readers see the old or the new snapshot.
        cache = MetadataCache(relations=relations, last_refreshed=self.clock())
        self._cache, self._index, self._keys = cache, cache.index(), {}
        logger.info("Metadata refreshed: %d relations in %.2fs", len(relations), time.time() - t0)

    def invalidate(self) -> None:
        self._cache, self._index, self._keys = MetadataCache(), {}, {}

    def lookup(self, relation_name: str) -> Optional[RelationMetadata]:
        return self._index.get(relation_name)

    def execution_keys(self, relation_name: str) -> Optional[ExecutionKeys]:
        """Memoized primary keys and identity column for one relation."""
        keys = self._keys.get(relation_name)
        if keys is None:
            relation = self._index.get(relation_name)
            if relation is None:
                return None
            keys = ExecutionKeys(
                primary_keys=relation.primary_keys,
                identity_column=next((c.name for c in relation.columns if c.is_identity), None),
            )
            self._keys[relation_name] = keys
        return keys
