"""Pydantic schemas for connection parameters and the configuration-form descriptors."""
from typing import Any, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from sqlalchemy.engine import URL

from config import settings

MSSQL_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


class ConnectionParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    db_type: Literal["sqlite", "postgresql", "mssql"] = Field("sqlite", description="Database engine type")

    # SQLite only
    file_path: Optional[str] = Field(None, description="Path to .db file (SQLite only)")

    # Server databases
    server: Optional[str] = Field(None, alias="host", description="Database host")
    port: Optional[int] = Field(None, description="Database port")
    database: Optional[str] = Field(None, description="Database / catalog name")
    db_schema: Optional[str] = Field(None, alias="schema", description="Restrict exposed relations to this schema")
    warehouse: Optional[str] = Field(None, description="Compute warehouse (not used by the supported dialects)")
    role: Optional[str] = Field(None, description="Session role")
    username: Optional[str] = Field(None, description="Username")
    password: Optional[SecretStr] = Field(None, description="Password")

    # Timeouts and session limits
    query_timeout: int = Field(settings.DEFAULT_QUERY_TIMEOUT_SECONDS, ge=0)
    connection_timeout: int = Field(settings.DEFAULT_CONNECTION_TIMEOUT_SECONDS, ge=0)
    max_sessions: int = Field(settings.DEFAULT_MAX_SESSIONS, ge=1)
    session_idle_timeout: int = Field(settings.DEFAULT_SESSION_IDLE_TIMEOUT_SECONDS, ge=0)

    def get_sqlalchemy_url(self) -> URL:
        if self.db_type == "sqlite":
            return URL.create("sqlite", database=self.file_path or ":memory:")
        password = self.password.get_secret_value() if self.password else None
        if self.db_type == "postgresql":
            return URL.create(
                "postgresql+psycopg2",
                username=self.username,
                password=password,
                host=self.server,
                port=self.port or 5432,
                database=self.database,
            )
        return URL.create(
            "mssql+pyodbc",
            username=self.username,
            password=password,
            host=self.server,
            port=self.port or 1433,
            database=self.database,
            query={"driver": MSSQL_ODBC_DRIVER, "TrustServerCertificate": "yes"},
        )

    def get_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_engine`` derived from the timeout/session settings."""
        if self.db_type == "sqlite":
            return {
                "connect_args": {"check_same_thread": False, "timeout": self.connection_timeout},
                "isolation_level": "AUTOCOMMIT",
            }
        kwargs: dict[str, Any] = {
            "isolation_level": "AUTOCOMMIT",
            "pool_pre_ping": True,
            "pool_size": self.max_sessions,
            "pool_recycle": self.session_idle_timeout or -1,
        }
        if self.db_type == "postgresql":
            options = f"-c statement_timeout={self.query_timeout * 1000}"
            if self.role:
                options += f" -c role={self.role}"
            kwargs["connect_args"] = {"connect_timeout": self.connection_timeout, "options": options}
        else:
            kwargs["connect_args"] = {"timeout": self.connection_timeout}
        return kwargs

    def describe(self) -> str:
        """Loggable form of the target with the password hidden."""
        return self.get_sqlalchemy_url().render_as_string(hide_password=True)


class ConnectionField(BaseModel):
    name: str
    type: str
    label: str
    description: str = ""
    default: Optional[Any] = None


CONNECTION_FIELDS: list[ConnectionField] = [
    ConnectionField(name="db_type", type="choice", label="Database type",
                    description="One of sqlite, postgresql, mssql", default="sqlite"),
    ConnectionField(name="server", type="string", label="Server",
                    description="Host name or address of the database server"),
    ConnectionField(name="port", type="integer", label="Port",
                    description="Server port; the dialect default is used when empty"),
    ConnectionField(name="database", type="string", label="Database",
                    description="Database (catalog) holding the exposed relations"),
    ConnectionField(name="file_path", type="string", label="Database file",
                    description="Path to the SQLite database file"),
    ConnectionField(name="schema", type="string", label="Schema",
                    description="Only expose relations from this schema; all non-system schemas when empty"),
    ConnectionField(name="warehouse", type="string", label="Warehouse",
                    description="Compute warehouse, for engines that have one"),
    ConnectionField(name="role", type="string", label="Role",
                    description="Role assumed by the session"),
    ConnectionField(name="username", type="string", label="Username"),
    ConnectionField(name="password", type="password", label="Password"),
    ConnectionField(name="query_timeout", type="integer", label="Query timeout (s)",
                    description="Statement timeout applied to every command",
                    default=settings.DEFAULT_QUERY_TIMEOUT_SECONDS),
    ConnectionField(name="connection_timeout", type="integer", label="Connection timeout (s)",
                    description="Time allowed for opening the connection",
                    default=settings.DEFAULT_CONNECTION_TIMEOUT_SECONDS),
    ConnectionField(name="max_sessions", type="integer", label="Max sessions",
                    description="Upper bound of pooled sessions",
                    default=settings.DEFAULT_MAX_SESSIONS),
    ConnectionField(name="session_idle_timeout", type="integer", label="Session idle timeout (s)",
                    description="Pooled sessions idle longer than this are recycled",
                    default=settings.DEFAULT_SESSION_IDLE_TIMEOUT_SECONDS),
]
