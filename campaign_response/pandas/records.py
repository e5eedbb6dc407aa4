"""Pandas DataFrame adapters for the pipeline record types."""

from typing import List, Sequence

import pandas as pd  # type: ignore

from campaign_response.foundation.records import (
    CampaignSampleRecord,
    CustomerFeatureRow,
    DemographicRecord,
    JoinedCustomerRow,
    ScoredResult,
    ScoringRow,
    SourceColumns,
    TrainingRow,
    TransactionRecord,
)
from ._utils import require_complete, to_float


def transactions_to_dataframe(
    records: Sequence[TransactionRecord], columns: SourceColumns = SourceColumns()
) -> pd.DataFrame:
    """Convert transaction records to a DataFrame with source column names.

    Example:
        >>> df = transactions_to_dataframe([TransactionRecord("C1", 1, 10.0)])
        >>> df.to_parquet("transactions.parquet")
    """
    return pd.DataFrame(
        {
            columns.customer_id: [r.cust_id for r in records],
            columns.day_number: pd.Series([r.day_num for r in records], dtype="int64"),
            columns.extended_price: pd.Series(
                [r.extended_price for r in records], dtype="float64"
            ),
        }
    )


def demographics_to_dataframe(
    records: Sequence[DemographicRecord], columns: SourceColumns = SourceColumns()
) -> pd.DataFrame:
    """Convert demographic records to a DataFrame.

    The identifier uses the source name (``columns.demographics_id``) so the
    frame matches what the loader expects to find on disk. Attributes
    become one column each, in first-seen order.
    """
    rows = [
        {columns.demographics_id: r.customer_id, **dict(r.attributes)}
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=[columns.demographics_id])
    return pd.DataFrame(rows)


def campaign_sample_to_dataframe(
    records: Sequence[CampaignSampleRecord], columns: SourceColumns = SourceColumns()
) -> pd.DataFrame:
    """Convert campaign sample records to a DataFrame."""
    return pd.DataFrame(
        {
            columns.customer_id: [r.cust_id for r in records],
            columns.response: pd.Series([r.respond_yes for r in records], dtype="bool"),
        }
    )


def dataframe_to_feature_rows(
    df: pd.DataFrame, columns: SourceColumns = SourceColumns()
) -> List[CustomerFeatureRow]:
    """Convert aggregated features to CustomerFeatureRow objects.

    Raises:
        ValueError: If columns are missing, null, or fail row validation

    Note:
        Output is sorted by customer id (lexicographic order).
    """
    required = [columns.customer_id, columns.txns, columns.spend]
    require_complete(df, required, "Customer feature rows")

    rows = [
        CustomerFeatureRow(
            cust_id=str(record[columns.customer_id]),
            txns=int(record[columns.txns]),
            spend=to_float(record[columns.spend]),
        )
        for record in df.to_dict("records")
    ]
    return sorted(rows, key=lambda row: row.cust_id)


def _joined_kwargs(record: dict, columns: SourceColumns, reserved: set) -> dict:
    return {
        "ID": str(record[columns.canonical_id]),
        "txns": int(record[columns.txns]),
        "spend": to_float(record[columns.spend]),
        "attributes": {
            key: value for key, value in record.items() if key not in reserved
        },
    }


def dataframe_to_joined_rows(
    df: pd.DataFrame, columns: SourceColumns = SourceColumns()
) -> List[JoinedCustomerRow]:
    """Convert joined customers to JoinedCustomerRow objects.

    Every column other than the identifier, ``txns`` and ``spend`` is kept
    as a demographic attribute.
    """
    required = [columns.canonical_id, columns.txns, columns.spend]
    require_complete(df, required, "Joined customer rows")
    reserved = set(required)
    return [
        JoinedCustomerRow(**_joined_kwargs(record, columns, reserved))
        for record in df.to_dict("records")
    ]


def dataframe_to_training_rows(
    df: pd.DataFrame, columns: SourceColumns = SourceColumns()
) -> List[TrainingRow]:
    """Convert the training set to TrainingRow objects.

    Raises:
        ValueError: If the label is missing, null, or not 0/1
    """
    required = [columns.canonical_id, columns.txns, columns.spend, columns.label]
    require_complete(df, required, "Training rows")
    reserved = set(required)
    return [
        TrainingRow(
            **_joined_kwargs(record, columns, reserved),
            respond=int(record[columns.label]),
        )
        for record in df.to_dict("records")
    ]


def dataframe_to_scoring_rows(
    df: pd.DataFrame, columns: SourceColumns = SourceColumns()
) -> List[ScoringRow]:
    """Convert the scoring set to ScoringRow objects."""
    required = [columns.canonical_id, columns.txns, columns.spend]
    require_complete(df, required, "Scoring rows")
    reserved = set(required)
    return [
        ScoringRow(**_joined_kwargs(record, columns, reserved))
        for record in df.to_dict("records")
    ]


def scored_to_dataframe(
    results: Sequence[ScoredResult], id_column: str = "ID"
) -> pd.DataFrame:
    """Convert ranked results to a DataFrame, keeping their order.

    The ``std_error`` column is only present when every result carries one.

    Example:
        >>> ranked = score_customers(model, scoring_df)
        >>> scored_to_dataframe(ranked).head(10)
    """
    with_std_error = bool(results) and all(r.std_error is not None for r in results)
    data = {
        id_column: [r.customer_id for r in results],
        "probability": pd.Series([r.probability for r in results], dtype="float64"),
    }
    if with_std_error:
        data["std_error"] = pd.Series([r.std_error for r in results], dtype="float64")
    return pd.DataFrame(data)
