"""End-to-end campaign response pipeline.

Loads the three inputs, aggregates per-customer features, joins them with
demographics, splits the joined customers into the campaign sample
(training) and everyone else (scoring), fits the response model and ranks
the scoring population by predicted response probability.

Every stage runs once, in order, against a single :class:`QuerySession`
created for the run. Any failure aborts the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from campaign_response.foundation.features import aggregate_customer_features
from campaign_response.foundation.joins import (
    explain_join,
    join_features_demographics,
    split_campaign_population,
)
from campaign_response.foundation.loader import (
    ColumnarFormat,
    load_campaign_sample,
    load_demographics,
    load_transactions,
)
from campaign_response.foundation.records import ScoredResult, SourceColumns
from campaign_response.foundation.session import QuerySession, SessionConfig
from campaign_response.models.response_model import (
    ResponseModelConfig,
    ResponseModelWrapper,
)
from campaign_response.models.scoring import score_customers

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """Inputs and settings for one pipeline run.

    ``model.label_column`` and ``model.id_column`` are overridden by
    ``columns.label`` and ``columns.canonical_id`` so the trainer and the
    joins always agree on column names.
    """

    transactions_path: Path
    demographics_path: Path
    campaign_sample_path: Path
    file_format: ColumnarFormat = ColumnarFormat.PARQUET
    columns: SourceColumns = field(default_factory=SourceColumns)
    session: SessionConfig = field(default_factory=SessionConfig)
    model: ResponseModelConfig = field(default_factory=ResponseModelConfig)
    with_std_error: bool = False
    explain: bool = False


@dataclass
class PipelineResult:
    """Everything produced by one run.

    Attributes
    ----------
    feature_count:
        Customers with at least one transaction.
    joined_count:
        Customers with both features and demographics.
    training:
        Labeled training set, ordered by identifier.
    scoring:
        Scoring set (customers outside the campaign sample), ordered by
        identifier.
    model:
        Fitted response model.
    ranked:
        Scored customers, highest probability first.
    join_plan:
        Engine plan for the features/demographics join when requested.
    """

    feature_count: int
    joined_count: int
    training: pd.DataFrame
    scoring: pd.DataFrame
    model: ResponseModelWrapper
    ranked: list[ScoredResult]
    join_plan: str | None = None


def run_pipeline(config: PipelineConfig) -> PipelineResult:
    """Run the full pipeline and return the ranked scoring population."""
    columns = config.columns
    model_config = ResponseModelConfig(
        label_column=columns.label,
        id_column=columns.canonical_id,
        method=config.model.method,
        max_iter=config.model.max_iter,
        predictors=config.model.predictors,
    )

    with QuerySession(config.session) as session:
        transactions = load_transactions(
            session, config.transactions_path, config.file_format, columns
        )
        demographics = load_demographics(
            session, config.demographics_path, config.file_format, columns
        )
        sample = load_campaign_sample(
            session, config.campaign_sample_path, config.file_format, columns
        )

        features = aggregate_customer_features(session, transactions, columns)
        join_plan = None
        if config.explain:
            join_plan = explain_join(
                session,
                demographics,
                features,
                on=(columns.canonical_id, columns.customer_id),
                right_columns=(columns.txns, columns.spend),
            )
        joined = join_features_demographics(session, features, demographics, columns)
        training_set, scoring_set = split_campaign_population(
            session, joined, sample, columns
        )

        order = [columns.canonical_id]
        training = session.to_frame(training_set, order_by=order)
        scoring = session.to_frame(scoring_set, order_by=order)

    model = ResponseModelWrapper(model_config).fit(training)
    ranked = score_customers(
        model,
        scoring,
        id_column=columns.canonical_id,
        with_std_error=config.with_std_error,
    )
    logger.info(
        f"Pipeline finished: {features.row_count} customers with transactions, "
        f"{joined.row_count} joined, {len(training)} training, {len(ranked)} scored"
    )
    return PipelineResult(
        feature_count=features.row_count,
        joined_count=joined.row_count,
        training=training,
        scoring=scoring,
        model=model,
        ranked=ranked,
        join_plan=join_plan,
    )


__all__ = ["PipelineConfig", "PipelineResult", "run_pipeline"]
