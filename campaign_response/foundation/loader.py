"""Load the three pipeline inputs from columnar files.

Schemas are never hard-coded: column names and types come from the
metadata embedded in each file. Only the columns used by the aggregation
and the joins are checked for presence, and the aggregated columns and the
response flag for type.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Sequence

import duckdb
import pyarrow as pa
import pyarrow.feather as feather

from campaign_response.errors import InputError
from campaign_response.foundation.records import SourceColumns
from campaign_response.foundation.session import (
    Dataset,
    QuerySession,
    quote_identifier,
    quote_literal,
)

logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"
DEMOGRAPHICS_TABLE = "demographics"
CAMPAIGN_SAMPLE_TABLE = "campaign_sample"

INTEGER_TYPES = frozenset(
    {
        "TINYINT",
        "SMALLINT",
        "INTEGER",
        "BIGINT",
        "HUGEINT",
        "UTINYINT",
        "USMALLINT",
        "UINTEGER",
        "UBIGINT",
        "UHUGEINT",
    }
)
FLOAT_TYPES = frozenset({"FLOAT", "DOUBLE"})


class ColumnarFormat(str, Enum):
    """Supported input file formats."""

    PARQUET = "parquet"
    FEATHER = "feather"


def load_dataset(
    session: QuerySession,
    path: Path | str,
    name: str,
    file_format: ColumnarFormat = ColumnarFormat.PARQUET,
    *,
    required_columns: Sequence[str] = (),
    numeric_columns: Sequence[str] = (),
    flag_columns: Sequence[str] = (),
    rename: dict[str, str] | None = None,
) -> Dataset:
    """Load one columnar file into the session as table ``name``.

    Parameters
    ----------
    session:
        Engine session receiving the table.
    path:
        Location of the file.
    name:
        Table name for the loaded data.
    file_format:
        Declared format of the file. A file that does not parse in this
        format is rejected.
    required_columns:
        Source column names that must exist in the file.
    rename:
        Optional ``{source: target}`` mapping applied while loading.
    numeric_columns:
        Source columns that must hold integer, floating point or decimal
        values.
    flag_columns:
        Source columns that must be boolean or integer.

    Raises
    ------
    InputError:
        If the file is missing, unreadable or not in the declared format,
        lacks a required column, or holds a typed column of the wrong type.
    """
    resolved = Path(path).resolve()
    file_format = ColumnarFormat(file_format)
    if not resolved.is_file():
        raise InputError(f"Input file {resolved} does not exist")

    staging = f"__staging_{name}"
    try:
        if file_format is ColumnarFormat.PARQUET:
            staged = session.create_table(
                staging, f"SELECT * FROM read_parquet({quote_literal(str(resolved))})"
            )
        else:
            staged = session.register_frame(staging, feather.read_table(resolved))
    except (duckdb.Error, pa.ArrowException, OSError) as exc:
        raise InputError(
            f"Could not read {resolved} as {file_format.value}: {exc}"
        ) from exc

    try:
        try:
            staged.require_columns(
                [*required_columns, *numeric_columns, *flag_columns]
            )
        except KeyError as exc:
            raise InputError(f"Input file {resolved}: {exc.args[0]}") from exc
        _check_types(staged, resolved, numeric_columns, _is_numeric, "numeric")
        _check_types(staged, resolved, flag_columns, _is_flag, "boolean or integer")

        rename = rename or {}
        unknown = [source for source in rename if not staged.has_column(source)]
        if unknown:
            raise InputError(
                f"Input file {resolved} has no column(s) {unknown} to rename"
            )
        sources = {source.lower() for source in rename}
        clashes = [
            target
            for target in rename.values()
            if staged.has_column(target) and target.lower() not in sources
        ]
        if clashes:
            raise InputError(
                f"Input file {resolved} already has column(s) {clashes}; "
                "cannot rename onto them"
            )
        projection = ", ".join(
            _project(column, rename) for column in staged.columns
        )
        try:
            dataset = session.create_table(
                name, f"SELECT {projection} FROM {quote_identifier(staging)}"
            )
        except duckdb.Error as exc:
            raise InputError(f"Input file {resolved}: {exc}") from exc
    finally:
        session.connection.execute(f"DROP TABLE IF EXISTS {quote_identifier(staging)}")

    logger.info(
        f"Loaded {dataset.row_count} rows with {len(dataset.schema)} columns "
        f"from {resolved} into {name}"
    )
    return dataset


def _base_type(dtype: str) -> str:
    return dtype.upper().split("(", 1)[0].strip()


def _is_numeric(dtype: str) -> bool:
    base = _base_type(dtype)
    return base in INTEGER_TYPES or base in FLOAT_TYPES or base == "DECIMAL"


def _is_flag(dtype: str) -> bool:
    base = _base_type(dtype)
    return base == "BOOLEAN" or base in INTEGER_TYPES


def _check_types(
    dataset: Dataset,
    resolved: Path,
    names: Sequence[str],
    accepts: Callable[[str], bool],
    expected: str,
) -> None:
    wrong = {
        name: dataset.dtype(name)
        for name in names
        if not accepts(dataset.dtype(name))
    }
    if wrong:
        raise InputError(
            f"Input file {resolved} has column(s) with the wrong type, "
            f"expected {expected}: {wrong}"
        )


def _project(column: str, rename: dict[str, str]) -> str:
    for source, target in rename.items():
        if source.lower() == column.lower():
            return f"{quote_identifier(column)} AS {quote_identifier(target)}"
    return quote_identifier(column)


def load_transactions(
    session: QuerySession,
    path: Path | str,
    file_format: ColumnarFormat = ColumnarFormat.PARQUET,
    columns: SourceColumns = SourceColumns(),
) -> Dataset:
    """Load transaction line items (customer, day number, extended price)."""
    return load_dataset(
        session,
        path,
        TRANSACTIONS_TABLE,
        file_format,
        required_columns=(
            columns.customer_id,
            columns.day_number,
            columns.extended_price,
        ),
        numeric_columns=(columns.day_number, columns.extended_price),
    )


def load_demographics(
    session: QuerySession,
    path: Path | str,
    file_format: ColumnarFormat = ColumnarFormat.PARQUET,
    columns: SourceColumns = SourceColumns(),
) -> Dataset:
    """Load demographics, renaming the identifier to the canonical name.

    This is the only place the demographics identifier is renamed; every
    downstream join refers to ``columns.canonical_id``.
    """
    rename = {}
    if columns.demographics_id.lower() != columns.canonical_id.lower():
        rename[columns.demographics_id] = columns.canonical_id
    return load_dataset(
        session,
        path,
        DEMOGRAPHICS_TABLE,
        file_format,
        required_columns=(columns.demographics_id,),
        rename=rename,
    )


def load_campaign_sample(
    session: QuerySession,
    path: Path | str,
    file_format: ColumnarFormat = ColumnarFormat.PARQUET,
    columns: SourceColumns = SourceColumns(),
) -> Dataset:
    """Load the customers who received the offer and their response."""
    return load_dataset(
        session,
        path,
        CAMPAIGN_SAMPLE_TABLE,
        file_format,
        required_columns=(columns.customer_id, columns.response),
        flag_columns=(columns.response,),
    )


__all__ = [
    "CAMPAIGN_SAMPLE_TABLE",
    "ColumnarFormat",
    "DEMOGRAPHICS_TABLE",
    "TRANSACTIONS_TABLE",
    "load_campaign_sample",
    "load_dataset",
    "load_demographics",
    "load_transactions",
]
