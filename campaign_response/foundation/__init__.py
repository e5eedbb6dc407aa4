"""Foundational building blocks for the response modeling pipeline.

This package exposes the per-stage record types, the query engine session,
the columnar loaders, the per-customer feature aggregation and the keyed
joins that produce the training and scoring populations.
"""

from .features import CUSTOMER_FEATURES_TABLE, aggregate_customer_features
from .joins import (
    build_scoring_set,
    build_training_set,
    explain_join,
    join_features_demographics,
    join_tables,
    split_campaign_population,
    verify_join_cardinality,
)
from .loader import (
    ColumnarFormat,
    load_campaign_sample,
    load_dataset,
    load_demographics,
    load_transactions,
)
from .records import (
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
from .session import Column, Dataset, QuerySession, SessionConfig

__all__ = [
    "CUSTOMER_FEATURES_TABLE",
    "CampaignSampleRecord",
    "Column",
    "ColumnarFormat",
    "CustomerFeatureRow",
    "Dataset",
    "DemographicRecord",
    "JoinedCustomerRow",
    "QuerySession",
    "ScoredResult",
    "ScoringRow",
    "SessionConfig",
    "SourceColumns",
    "TrainingRow",
    "TransactionRecord",
    "aggregate_customer_features",
    "build_scoring_set",
    "build_training_set",
    "explain_join",
    "join_features_demographics",
    "join_tables",
    "load_campaign_sample",
    "load_dataset",
    "load_demographics",
    "load_transactions",
    "split_campaign_population",
    "verify_join_cardinality",
]
