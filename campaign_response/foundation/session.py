"""Query engine session shared by the loaders, the aggregator and the joins.

A :class:`QuerySession` wraps one DuckDB connection. It is created once per
pipeline run and passed explicitly to every stage, so there is no global
engine state. Each stage materializes its result as a named table and
receives a :class:`Dataset` describing it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a column or table name for use in SQL."""
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    """Quote a string literal for use in SQL."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class Column:
    """Name and engine type of a dataset column."""

    name: str
    dtype: str


@dataclass(frozen=True)
class Dataset:
    """A named table held by a :class:`QuerySession`.

    Attributes
    ----------
    name:
        Table name inside the session.
    schema:
        Columns in table order, as reported by the engine.
    row_count:
        Number of rows at materialization time. Tables are never modified
        after creation, so the count stays valid.
    """

    name: str
    schema: tuple[Column, ...]
    row_count: int

    @property
    def columns(self) -> list[str]:
        return [column.name for column in self.schema]

    def has_column(self, name: str) -> bool:
        # The engine resolves identifiers case-insensitively.
        return name.lower() in {column.lower() for column in self.columns}

    def dtype(self, name: str) -> str:
        """Engine type of column ``name``, looked up case-insensitively."""
        for column in self.schema:
            if column.name.lower() == name.lower():
                return column.dtype
        raise KeyError(f"Table {self.name!r} has no column {name!r}")

    def require_columns(self, names: Sequence[str]) -> None:
        """Raise ``KeyError`` listing the columns the table lacks."""
        missing = [name for name in names if not self.has_column(name)]
        if missing:
            raise KeyError(
                f"Table {self.name!r} missing required columns: {missing}. "
                f"Available columns: {self.columns}"
            )


@dataclass
class SessionConfig:
    """Configuration for the query engine.

    Attributes
    ----------
    database:
        DuckDB database path. ``":memory:"`` keeps every table in memory.
    threads:
        Worker threads used by the engine. ``None`` keeps the engine default
        (one per core).
    memory_limit:
        Engine memory cap such as ``"4GB"``. ``None`` keeps the default.
    """

    database: str = ":memory:"
    threads: Optional[int] = None
    memory_limit: Optional[str] = None


class QuerySession:
    """Explicit handle to the SQL engine used for one pipeline run.

    Examples
    --------
    >>> with QuerySession() as session:
    ...     ds = session.create_table("numbers", "SELECT 1 AS n")
    ...     ds.row_count
    1
    """

    def __init__(self, config: Optional[SessionConfig] = None) -> None:
        config = config or SessionConfig()
        if config.threads is not None and config.threads < 1:
            raise ValueError(f"threads must be positive: {config.threads}")
        self.config = config
        self.connection = duckdb.connect(database=config.database)
        if config.threads is not None:
            self.connection.execute(f"SET threads TO {int(config.threads)}")
        if config.memory_limit is not None:
            self.connection.execute(
                f"SET memory_limit = {quote_literal(config.memory_limit)}"
            )

    def __enter__(self) -> "QuerySession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()

    def create_table(self, name: str, select_sql: str) -> Dataset:
        """Materialize ``select_sql`` as table ``name`` and describe it."""
        self.connection.execute(
            f"CREATE OR REPLACE TABLE {quote_identifier(name)} AS {select_sql}"
        )
        dataset = self.describe(name)
        logger.debug(f"Created table {name} with {dataset.row_count} rows")
        return dataset

    def register_frame(self, name: str, frame: pd.DataFrame) -> Dataset:
        """Copy a pandas DataFrame (or Arrow table) into table ``name``."""
        view_name = f"__frame_{name}"
        self.connection.register(view_name, frame)
        try:
            return self.create_table(
                name, f"SELECT * FROM {quote_identifier(view_name)}"
            )
        finally:
            self.connection.unregister(view_name)

    def describe(self, name: str) -> Dataset:
        """Return the schema and row count of an existing table."""
        table = quote_identifier(name)
        rows = self.connection.execute(f"DESCRIBE {table}").fetchall()
        schema = tuple(Column(name=str(row[0]), dtype=str(row[1])) for row in rows)
        row_count = self.connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        return Dataset(name=name, schema=schema, row_count=int(row_count))

    def scalar(self, sql: str):
        """Run a query returning a single value."""
        return self.connection.execute(sql).fetchone()[0]

    def explain(self, select_sql: str) -> str:
        """Return the physical plan the engine chooses for ``select_sql``."""
        rows = self.connection.execute(f"EXPLAIN {select_sql}").fetchall()
        return "\n".join(str(row[-1]) for row in rows)

    def to_frame(
        self, dataset: Dataset, order_by: Optional[Sequence[str]] = None
    ) -> pd.DataFrame:
        """Materialize a table as a local pandas DataFrame."""
        sql = f"SELECT * FROM {quote_identifier(dataset.name)}"
        if order_by:
            sql += " ORDER BY " + ", ".join(quote_identifier(col) for col in order_by)
        return self.connection.execute(sql).fetchdf()


__all__ = [
    "Column",
    "Dataset",
    "QuerySession",
    "SessionConfig",
    "quote_identifier",
    "quote_literal",
]
