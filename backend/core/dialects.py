"""
Per-database SQL: introspection queries, identifier quoting, last-identity
expressions and write batching. Supports SQLite, PostgreSQL and SQL Server.

Both introspection queries return uniform column names so MetadataStore can
fold them without knowing the dialect:

    primary keys: table_catalog, table_schema, table_name, column_name
    columns:      table_catalog, table_schema, table_name, table_type,
                  column_name, is_nullable, is_identity, is_computed

The column query must be ordered by relation then column name.
"""
import abc


class Dialect(abc.ABC):
    name = "generic"
    quote_open = "["
    quote_close = "]"
    # Run multi-statement writes as one batch instead of sequential statements.
    batch_writes = False
    # Ask the driver for a server-side cursor on reads.
    stream_results = True

    primary_key_query = ""
    columns_query = ""

    def quote(self, identifier: str) -> str:
        escaped = identifier.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    @abc.abstractmethod
    def last_identity(self) -> str:
        """Expression returning the identity value of the last INSERT on this session."""

    def single_row_prefix(self) -> str:
        """Keyword inserted after UPDATE/DELETE to cap the statement at one row."""
        return ""

    def batch(self, parts: list[str]) -> str:
        return ";\n".join(parts)


class SqliteDialect(Dialect):
    name = "sqlite"

    primary_key_query = """
        SELECT 'main' AS table_catalog, 'main' AS table_schema,
               m.name AS table_name, p.name AS column_name
        FROM sqlite_master AS m
        JOIN pragma_table_info(m.name) AS p
        WHERE m.type = 'table' AND p.pk > 0
    """

    columns_query = """
        SELECT 'main' AS table_catalog, 'main' AS table_schema,
               m.name AS table_name, m.type AS table_type, p.name AS column_name,
               CASE WHEN p."notnull" = 0 AND p.pk = 0 THEN 1 ELSE 0 END AS is_nullable,
               CASE WHEN m.type = 'table' AND p.pk = 1 AND upper(p.type) = 'INTEGER'
                         AND (SELECT count(*) FROM pragma_table_info(m.name) AS k WHERE k.pk > 0) = 1
                         AND upper(m.sql) NOT LIKE '%WITHOUT ROWID%'
                    THEN 1 ELSE 0 END AS is_identity,
               CASE WHEN p.hidden IN (2, 3) THEN 1 ELSE 0 END AS is_computed
        FROM sqlite_master AS m
        JOIN pragma_table_xinfo(m.name) AS p
        WHERE m.type IN ('table', 'view')
          AND substr(m.name, 1, 7) <> 'sqlite_'
          AND p.hidden <> 1
        ORDER BY m.name, p.name
    """

    def last_identity(self) -> str:
        return "last_insert_rowid()"


class PostgresDialect(Dialect):
    name = "postgresql"
    quote_open = '"'
    quote_close = '"'
    # psycopg2 named cursors need a transaction; connections run in AUTOCOMMIT.
    stream_results = False

    primary_key_query = """
        SELECT kcu.table_catalog, kcu.table_schema, kcu.table_name, kcu.column_name
        FROM information_schema.table_constraints AS tc
        JOIN information_schema.key_column_usage AS kcu
          ON kcu.constraint_catalog = tc.constraint_catalog
         AND kcu.constraint_schema = tc.constraint_schema
         AND kcu.constraint_name = tc.constraint_name
        WHERE tc.constraint_type = 'PRIMARY KEY'
    """

    columns_query = """
        SELECT t.table_catalog, t.table_schema, t.table_name, t.table_type, c.column_name,
               CASE WHEN c.is_nullable = 'YES' THEN 1 ELSE 0 END AS is_nullable,
               CASE WHEN c.is_identity = 'YES' OR c.column_default LIKE 'nextval(%'
                    THEN 1 ELSE 0 END AS is_identity,
               CASE WHEN c.is_generated = 'ALWAYS' THEN 1 ELSE 0 END AS is_computed
        FROM information_schema.tables AS t
        JOIN information_schema.columns AS c
          ON c.table_catalog = t.table_catalog
         AND c.table_schema = t.table_schema
         AND c.table_name = t.table_name
        WHERE t.table_schema NOT IN ('pg_catalog', 'information_schema')
        ORDER BY t.table_schema, t.table_name, c.column_name
    """

    def last_identity(self) -> str:
        return "lastval()"


class MssqlDialect(Dialect):
    name = "mssql"
    # SCOPE_IDENTITY() only sees the INSERT when both run in the same batch.
    batch_writes = True

    primary_key_query = """
        SELECT kcu.TABLE_CATALOG AS table_catalog, kcu.TABLE_SCHEMA AS table_schema,
               kcu.TABLE_NAME AS table_name, kcu.COLUMN_NAME AS column_name
        FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS AS tc
        JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE AS kcu
          ON kcu.CONSTRAINT_CATALOG = tc.CONSTRAINT_CATALOG
         AND kcu.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
         AND kcu.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
        WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
    """

    columns_query = """
        SELECT t.TABLE_CATALOG AS table_catalog, t.TABLE_SCHEMA AS table_schema,
               t.TABLE_NAME AS table_name, t.TABLE_TYPE AS table_type,
               c.COLUMN_NAME AS column_name,
               CASE WHEN c.IS_NULLABLE = 'YES' THEN 1 ELSE 0 END AS is_nullable,
               COALESCE(COLUMNPROPERTY(OBJECT_ID(QUOTENAME(t.TABLE_SCHEMA) + '.' + QUOTENAME(t.TABLE_NAME)),
                                       c.COLUMN_NAME, 'IsIdentity'), 0) AS is_identity,
               COALESCE(COLUMNPROPERTY(OBJECT_ID(QUOTENAME(t.TABLE_SCHEMA) + '.' + QUOTENAME(t.TABLE_NAME)),
                                       c.COLUMN_NAME, 'IsComputed'), 0) AS is_computed
        FROM INFORMATION_SCHEMA.TABLES AS t
        JOIN INFORMATION_SCHEMA.COLUMNS AS c
          ON c.TABLE_CATALOG = t.TABLE_CATALOG
         AND c.TABLE_SCHEMA = t.TABLE_SCHEMA
         AND c.TABLE_NAME = t.TABLE_NAME
        WHERE t.TABLE_SCHEMA NOT IN ('sys', 'INFORMATION_SCHEMA')
        ORDER BY t.TABLE_SCHEMA, t.TABLE_NAME, c.COLUMN_NAME
    """

    def last_identity(self) -> str:
        return "SCOPE_IDENTITY()"

    def single_row_prefix(self) -> str:
        return "TOP (1) "

    def batch(self, parts: list[str]) -> str:
        return "SET NOCOUNT ON;\n" + ";\n".join(parts)


_DIALECTS = {
    "sqlite": SqliteDialect,
    "postgresql": PostgresDialect,
    "mssql": MssqlDialect,
}


def get_dialect(db_type: str) -> Dialect:
    try:
        return _DIALECTS[db_type]()
    except KeyError:
        raise ValueError(f"Unsupported database type '{db_type}'") from None
