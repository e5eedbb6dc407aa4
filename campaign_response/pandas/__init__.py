"""Pandas DataFrame adapters for the response modeling record types."""

from .records import (
    campaign_sample_to_dataframe,
    dataframe_to_feature_rows,
    dataframe_to_joined_rows,
    dataframe_to_scoring_rows,
    dataframe_to_training_rows,
    demographics_to_dataframe,
    scored_to_dataframe,
    transactions_to_dataframe,
)

__all__ = [
    # Input records
    "transactions_to_dataframe",
    "demographics_to_dataframe",
    "campaign_sample_to_dataframe",
    # Derived rows
    "dataframe_to_feature_rows",
    "dataframe_to_joined_rows",
    "dataframe_to_training_rows",
    "dataframe_to_scoring_rows",
    # Scored results
    "scored_to_dataframe",
]
