"""Keyed joins between customer features, demographics and the campaign sample.

Every join here names its key columns explicitly. A join without a key
predicate pairs every left row with every right row, which silently
multiplies the customer population, so it is refused unless the caller
asks for a Cartesian product by name. Each keyed join also checks its
output cardinality against what the inputs allow.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import duckdb

from campaign_response.errors import JoinKeyError
from campaign_response.foundation.records import SourceColumns
from campaign_response.foundation.session import (
    Dataset,
    QuerySession,
    quote_identifier,
)

logger = logging.getLogger(__name__)

CUSTOMER_JOINED_TABLE = "customer_joined"
TRAINING_TABLE = "training_set"
SCORING_TABLE = "scoring_set"

#: Operator name the engine uses for an unconstrained join in EXPLAIN output.
CARTESIAN_OPERATOR = "CROSS_PRODUCT"


def _join_select(
    left: Dataset,
    right: Dataset,
    on: Optional[tuple[str, str]],
    right_columns: Optional[Sequence[str]],
) -> str:
    if right_columns is None:
        left_names = {column.lower() for column in left.columns}
        right_key = on[1].lower() if on else None
        right_columns = [
            column
            for column in right.columns
            if column.lower() != right_key and column.lower() not in left_names
        ]
    projection = ", ".join(
        ["l.*"] + [f"r.{quote_identifier(column)}" for column in right_columns]
    )
    source = (
        f"{quote_identifier(left.name)} AS l "
        f"{'INNER JOIN' if on else 'CROSS JOIN'} {quote_identifier(right.name)} AS r"
    )
    if on:
        left_key, right_key = on
        source += f" ON l.{quote_identifier(left_key)} = r.{quote_identifier(right_key)}"
    return f"SELECT {projection} FROM {source}"


def join_tables(
    session: QuerySession,
    left: Dataset,
    right: Dataset,
    *,
    name: str,
    on: Optional[tuple[str, str]],
    right_columns: Optional[Sequence[str]] = None,
    allow_cartesian: bool = False,
) -> Dataset:
    """Inner-join two tables on ``left.on[0] == right.on[1]``.

    The output holds every left column followed by ``right_columns``
    (default: every right column except the key and names already present
    on the left).

    Parameters
    ----------
    on:
        ``(left_key, right_key)``. ``None`` means no key predicate, which
        produces ``left.row_count * right.row_count`` rows.
    allow_cartesian:
        Must be ``True`` for ``on=None`` to be accepted.

    Raises
    ------
    JoinKeyError:
        If ``on`` is missing without ``allow_cartesian``, a key column does
        not exist, the key types cannot be compared, or a keyed join yields
        more rows than distinct keys (duplicate keys on either side).
    """
    if on is None:
        if not allow_cartesian:
            raise JoinKeyError(
                f"Join of {left.name!r} and {right.name!r} has no key predicate; "
                "it would pair every row with every row. Pass on=(left_key, right_key)."
            )
        logger.warning(
            f"Building Cartesian product of {left.name} ({left.row_count} rows) "
            f"and {right.name} ({right.row_count} rows)"
        )
    else:
        _require_key(left, on[0])
        _require_key(right, on[1])

    try:
        joined = session.create_table(
            name, _join_select(left, right, on, right_columns)
        )
    except duckdb.Error as exc:
        raise JoinKeyError(
            f"Join of {left.name!r} and {right.name!r} on {on} failed: {exc}"
        ) from exc

    if on is not None:
        verify_join_cardinality(
            session,
            joined,
            key=on[0],
            upper_bound=min(left.row_count, right.row_count),
        )
    logger.info(
        f"Joined {left.name} ({left.row_count}) with {right.name} "
        f"({right.row_count}) into {name} ({joined.row_count} rows)"
    )
    return joined


def explain_join(
    session: QuerySession,
    left: Dataset,
    right: Dataset,
    *,
    on: Optional[tuple[str, str]],
    right_columns: Optional[Sequence[str]] = None,
) -> str:
    """Return the engine's physical plan for a join without running it.

    A join lacking a key predicate shows up as a ``CROSS_PRODUCT``
    operator in the plan.
    """
    return session.explain(_join_select(left, right, on, right_columns))


def verify_join_cardinality(
    session: QuerySession, joined: Dataset, *, key: str, upper_bound: int
) -> None:
    """Check a keyed join produced one row per key and no more than expected.

    Raises
    ------
    JoinKeyError:
        If the row count exceeds ``upper_bound`` or differs from the number
        of distinct ``key`` values.
    """
    distinct_keys = session.scalar(
        f"SELECT COUNT(DISTINCT {quote_identifier(key)}) "
        f"FROM {quote_identifier(joined.name)}"
    )
    if joined.row_count > upper_bound:
        raise JoinKeyError(
            f"Join produced {joined.row_count} rows in {joined.name!r}, "
            f"more than the expected maximum of {upper_bound}"
        )
    if joined.row_count != distinct_keys:
        raise JoinKeyError(
            f"Join produced {joined.row_count} rows in {joined.name!r} for "
            f"{distinct_keys} distinct {key!r} values; join keys are not unique"
        )


def _require_key(dataset: Dataset, key: str) -> None:
    try:
        dataset.require_columns((key,))
    except KeyError as exc:
        raise JoinKeyError(exc.args[0]) from exc


def join_features_demographics(
    session: QuerySession,
    features: Dataset,
    demographics: Dataset,
    columns: SourceColumns = SourceColumns(),
    name: str = CUSTOMER_JOINED_TABLE,
) -> Dataset:
    """Attach transaction features to demographics.

    Inner join on ``features.cust_id == demographics.ID``. The output has
    the demographic columns followed by ``txns`` and ``spend``, one row per
    customer present in both tables.
    """
    return join_tables(
        session,
        demographics,
        features,
        name=name,
        on=(columns.canonical_id, columns.customer_id),
        right_columns=(columns.txns, columns.spend),
    )


def build_training_set(
    session: QuerySession,
    joined: Dataset,
    sample: Dataset,
    columns: SourceColumns = SourceColumns(),
    name: str = TRAINING_TABLE,
) -> Dataset:
    """Select customers who received the offer and attach their label.

    Inner join on ``joined.ID == sample.cust_id``; the response flag is
    cast to an integer and named ``columns.label``.
    """
    _require_key(joined, columns.canonical_id)
    _require_key(sample, columns.customer_id)
    _require_key(sample, columns.response)
    select_sql = (
        f"SELECT j.*, CAST(s.{quote_identifier(columns.response)} AS INTEGER) "
        f"AS {quote_identifier(columns.label)} "
        f"FROM {quote_identifier(joined.name)} AS j "
        f"INNER JOIN {quote_identifier(sample.name)} AS s "
        f"ON j.{quote_identifier(columns.canonical_id)} = "
        f"s.{quote_identifier(columns.customer_id)}"
    )
    try:
        training = session.create_table(name, select_sql)
    except duckdb.Error as exc:
        raise JoinKeyError(
            f"Could not join {joined.name!r} with {sample.name!r}: {exc}"
        ) from exc
    verify_join_cardinality(
        session,
        training,
        key=columns.canonical_id,
        upper_bound=min(joined.row_count, sample.row_count),
    )
    logger.info(f"Training set has {training.row_count} customers")
    return training


def build_scoring_set(
    session: QuerySession,
    joined: Dataset,
    sample: Dataset,
    columns: SourceColumns = SourceColumns(),
    name: str = SCORING_TABLE,
) -> Dataset:
    """Select customers who did not receive the offer.

    Left-outer join on ``joined.ID == sample.cust_id`` keeping the rows
    whose sample-side key is null. Only the joined columns are kept.
    """
    _require_key(joined, columns.canonical_id)
    _require_key(sample, columns.customer_id)
    sample_key = quote_identifier(columns.customer_id)
    select_sql = (
        f"SELECT j.* FROM {quote_identifier(joined.name)} AS j "
        f"LEFT OUTER JOIN {quote_identifier(sample.name)} AS s "
        f"ON j.{quote_identifier(columns.canonical_id)} = s.{sample_key} "
        f"WHERE s.{sample_key} IS NULL"
    )
    try:
        scoring = session.create_table(name, select_sql)
    except duckdb.Error as exc:
        raise JoinKeyError(
            f"Could not anti-join {joined.name!r} with {sample.name!r}: {exc}"
        ) from exc
    verify_join_cardinality(
        session, scoring, key=columns.canonical_id, upper_bound=joined.row_count
    )
    logger.info(f"Scoring set has {scoring.row_count} customers")
    return scoring


def split_campaign_population(
    session: QuerySession,
    joined: Dataset,
    sample: Dataset,
    columns: SourceColumns = SourceColumns(),
) -> tuple[Dataset, Dataset]:
    """Split joined customers into the training and scoring populations.

    Returns ``(training, scoring)``. The two sets are disjoint and together
    cover every joined customer.

    Raises
    ------
    JoinKeyError:
        If the two sets do not add up to the joined population.
    """
    training = build_training_set(session, joined, sample, columns)
    scoring = build_scoring_set(session, joined, sample, columns)
    if training.row_count + scoring.row_count != joined.row_count:
        raise JoinKeyError(
            f"Training ({training.row_count}) and scoring ({scoring.row_count}) "
            f"sets do not partition the {joined.row_count} joined customers"
        )
    return training, scoring


__all__ = [
    "CARTESIAN_OPERATOR",
    "CUSTOMER_JOINED_TABLE",
    "SCORING_TABLE",
    "TRAINING_TABLE",
    "build_scoring_set",
    "build_training_set",
    "explain_join",
    "join_features_demographics",
    "join_tables",
    "split_campaign_population",
    "verify_join_cardinality",
]
