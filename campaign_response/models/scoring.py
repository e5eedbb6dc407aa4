"""Score the holdout population with a fitted response model."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

import pandas as pd

from campaign_response.errors import ScoringError
from campaign_response.foundation.records import ScoredResult

logger = logging.getLogger(__name__)


class ResponsePredictor(Protocol):
    """Anything that predicts response probabilities from predictor columns."""

    predictors: Sequence[str]

    def predict(
        self, data: pd.DataFrame, with_std_error: bool = False
    ) -> pd.DataFrame: ...


def score_customers(
    model: ResponsePredictor,
    data: pd.DataFrame,
    id_column: str = "ID",
    *,
    with_std_error: bool = False,
) -> list[ScoredResult]:
    """Rank customers by predicted response probability.

    The identifier column is removed before the data reaches the model and
    re-attached to each prediction by position. Results are sorted by
    descending probability; customers with equal probability keep their
    input order.

    Parameters
    ----------
    model:
        Fitted model, e.g. :class:`~campaign_response.models.ResponseModelWrapper`.
    data:
        Scoring rows including the identifier column.
    id_column:
        Name of the identifier column.
    with_std_error:
        Attach the standard error of each probability.

    Raises
    ------
    ScoringError:
        If the identifier column is missing from ``data``, the model uses
        the identifier as a predictor, or the model returns a different
        number of predictions than rows.
    """
    if id_column not in data.columns:
        raise ScoringError(
            f"Scoring data missing identifier column {id_column!r}. "
            f"Available columns: {list(data.columns)}"
        )
    if id_column in getattr(model, "predictors", ()):
        raise ScoringError(
            f"Model uses identifier column {id_column!r} as a predictor"
        )

    identifiers = data[id_column].tolist()
    predictions = model.predict(
        data.drop(columns=[id_column]), with_std_error=with_std_error
    )
    if len(predictions) != len(identifiers):
        raise ScoringError(
            f"Model returned {len(predictions)} predictions for "
            f"{len(identifiers)} scoring rows"
        )

    probabilities = predictions["probability"].tolist()
    if with_std_error:
        std_errors = predictions["std_error"].tolist()
    else:
        std_errors = [None] * len(identifiers)

    results = [
        ScoredResult(
            customer_id=str(customer_id),
            probability=float(probability),
            std_error=None if std_error is None else float(std_error),
        )
        for customer_id, probability, std_error in zip(
            identifiers, probabilities, std_errors
        )
    ]
    # sorted() is stable, so ties keep input order
    results = sorted(results, key=lambda result: result.probability, reverse=True)
    logger.info(f"Scored {len(results)} customers")
    return results


__all__ = ["ResponsePredictor", "score_customers"]
