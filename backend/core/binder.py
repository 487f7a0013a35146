"""
Parameter binding for synthesized statements.

Values always reach the driver as bound parameters. ``deparameterize`` renders
a literal copy of a statement for the audit log only; it is never executed.
"""
import json
import re
from datetime import date, time
from typing import Any, Optional


class _SqlNull:
    """Explicit SQL NULL marker (JSON ``null`` after normalization)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SQL_NULL"

    def __bool__(self) -> bool:
        return False


SQL_NULL = _SqlNull()

PARAM_PREFIX = "param"
_TOKEN_RE = re.compile(rf":({PARAM_PREFIX}\d+_)")


def normalize_value(value: Any) -> Any:
    return SQL_NULL if value is None else value


class SynthesizedStatement:
    """SQL text (one or more statements) plus its ordered bound parameters."""

    def __init__(self):
        self.parts: list[str] = []
        self.parameters: list[tuple[str, Any]] = []

    @property
    def text(self) -> str:
        return "\n".join(self.parts)

    def add(self, sql: str) -> None:
        self.parts.append(sql)

    def bind(self, value: Any) -> str:
        """Register ``value`` and return the token to splice into the SQL text.

        Names are ``param0_``, ``param1_``... from the running count; the
        trailing underscore keeps ``param1_`` from matching inside ``param10_``.
        Lists, tuples and dicts are bound as compact JSON text.
        """
        if isinstance(value, (list, tuple, dict)):
            value = json.dumps(value, separators=(",", ":"), default=str)
        name = f"{PARAM_PREFIX}{len(self.parameters)}_"
        self.parameters.append((name, value))
        return f":{name}"

    def parameter_names(self) -> set[str]:
        return {name for name, _ in self.parameters}

    def driver_parameters(self, sql: Optional[str] = None) -> dict[str, Any]:
        """Bound values for the driver, restricted to tokens that appear in ``sql``."""
        return {
            name: (None if value is SQL_NULL else value)
            for name, value in self.parameters
            if sql is None or f":{name}" in sql
        }


def render_literal(value: Any) -> str:
    if value is SQL_NULL or value is None:
        return "NULL"
    if isinstance(value, (str, date, time)):
        text = value if isinstance(value, str) else value.isoformat()
        return "'" + text.replace("'", "''") + "'"
    return str(value).replace("'", "''")


def collapse(sql: str) -> str:
    """Join the non-blank, trimmed lines of ``sql`` with single spaces."""
    return " ".join(line.strip() for line in sql.split("\n") if line.strip())


def deparameterize(statement: SynthesizedStatement) -> str:
    literals = {name: render_literal(value) for name, value in statement.parameters}
    # One pass, so a rendered value that looks like a token is left alone.
    text = _TOKEN_RE.sub(lambda m: literals.get(m.group(1), m.group(0)), statement.text)
    return collapse(text)
