"""Per-customer feature aggregation over transaction line items."""

from __future__ import annotations

import logging

import duckdb

from campaign_response.errors import InputError
from campaign_response.foundation.records import SourceColumns
from campaign_response.foundation.session import (
    Dataset,
    QuerySession,
    quote_identifier,
)

logger = logging.getLogger(__name__)

CUSTOMER_FEATURES_TABLE = "customer_features"


def aggregate_customer_features(
    session: QuerySession,
    transactions: Dataset,
    columns: SourceColumns = SourceColumns(),
    name: str = CUSTOMER_FEATURES_TABLE,
) -> Dataset:
    """Aggregate transactions into one feature row per customer.

    For each customer identifier the output holds:

    - ``txns``: count of distinct day numbers, a proxy for shopping trips.
      Several line items on the same day count as one trip.
    - ``spend``: sum of extended price over all line items, same-day
      repeats included.

    Customers without transactions do not appear in the output; downstream
    inner joins rely on that.

    Parameters
    ----------
    session:
        Engine session holding the transactions table.
    transactions:
        Table of transaction line items.
    columns:
        Source column names.
    name:
        Name of the output table.

    Returns
    -------
    Dataset:
        Table with columns ``(customer_id, txns, spend)`` named after
        ``columns``.

    Raises
    ------
    KeyError:
        If a source column is missing.
    InputError:
        If the engine cannot aggregate the columns, e.g. a non-numeric price.
    """
    transactions.require_columns(
        (columns.customer_id, columns.day_number, columns.extended_price)
    )
    customer = quote_identifier(columns.customer_id)
    day = quote_identifier(columns.day_number)
    price = quote_identifier(columns.extended_price)

    try:
        features = session.create_table(
            name,
            f"SELECT {customer}, "
            f"CAST(COUNT(DISTINCT {day}) AS BIGINT) AS {quote_identifier(columns.txns)}, "
            f"CAST(SUM({price}) AS DOUBLE) AS {quote_identifier(columns.spend)} "
            f"FROM {quote_identifier(transactions.name)} "
            f"GROUP BY {customer}",
        )
    except duckdb.Error as exc:
        raise InputError(
            f"Could not aggregate {transactions.name!r} into customer features: {exc}"
        ) from exc
    logger.info(
        f"Aggregated {transactions.row_count} transactions into "
        f"{features.row_count} customer feature rows"
    )
    return features


__all__ = ["CUSTOMER_FEATURES_TABLE", "aggregate_customer_features"]
