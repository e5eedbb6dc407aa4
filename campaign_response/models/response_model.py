"""Logistic response model wrapper.

This module wraps a statsmodels binomial GLM (logit link) fitted from a
formula. The label is regressed on every remaining column of the training
data except the customer identifier; string, boolean and categorical
columns are dummy-encoded by the formula.

Predictions are returned on the response scale, i.e. as probabilities that
already went through the inverse link, optionally with their standard
errors.
"""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import PerfectSeparationWarning

from campaign_response.errors import ModelFitError, ScoringError

logger = logging.getLogger(__name__)

PREDICTION_COLUMNS = ["probability", "std_error"]


@dataclass
class ResponseModelConfig:
    """Configuration for response model training.

    Attributes
    ----------
    label_column:
        Numeric 0/1 response label.
    id_column:
        Customer identifier. Never used as a predictor.
    method:
        statsmodels GLM fitting method ('IRLS', 'newton', 'bfgs', ...).
    max_iter:
        Maximum solver iterations.
    predictors:
        Explicit predictor columns. ``None`` uses every column except the
        label and the identifier.
    """

    label_column: str = "respond"
    id_column: str = "ID"
    method: str = "IRLS"
    max_iter: int = 100
    predictors: Optional[Sequence[str]] = None


def _is_categorical(series: pd.Series) -> bool:
    return pd.api.types.is_bool_dtype(series) or not pd.api.types.is_numeric_dtype(
        series
    )


def _safe_names(columns: Sequence[str]) -> dict[str, str]:
    """Map column names to identifiers usable inside a formula."""
    mapping: dict[str, str] = {}
    used: set[str] = set()
    for column in columns:
        candidate = re.sub(r"\W", "_", str(column))
        if not candidate or candidate[0].isdigit():
            candidate = f"x_{candidate}"
        base, suffix = candidate, 1
        while candidate in used:
            candidate = f"{base}_{suffix}"
            suffix += 1
        used.add(candidate)
        mapping[column] = candidate
    return mapping


def _converged(results) -> bool:
    # IRLS sets ``converged``; gradient methods report it in ``mle_retvals``.
    converged = getattr(results, "converged", None)
    if converged is None:
        converged = (getattr(results, "mle_retvals", None) or {}).get("converged", True)
    return bool(converged)


class ResponseModelWrapper:
    """Wrapper for the logistic campaign response model.

    Examples
    --------
    >>> import pandas as pd
    >>> from campaign_response.models import ResponseModelWrapper
    >>> data = pd.DataFrame({
    ...     'ID': ['C1', 'C2', 'C3', 'C4', 'C5', 'C6'],
    ...     'txns': [1, 4, 2, 6, 3, 5],
    ...     'spend': [20.0, 80.0, 35.0, 150.0, 40.0, 90.0],
    ...     'respond': [0, 1, 0, 1, 1, 0],
    ... })
    >>> model = ResponseModelWrapper().fit(data)
    >>> model.predictors
    ['txns', 'spend']
    """

    def __init__(self, config: Optional[ResponseModelConfig] = None) -> None:
        self.config = config or ResponseModelConfig()
        self.results = None
        self.formula: Optional[str] = None
        self.predictors: list[str] = []
        self._names: dict[str, str] = {}
        self._levels: dict[str, set] = {}

    def _resolve_predictors(self, data: pd.DataFrame) -> list[str]:
        label = self.config.label_column
        id_column = self.config.id_column
        if self.config.predictors is not None:
            predictors = list(self.config.predictors)
            if id_column in predictors:
                raise ModelFitError(
                    f"Identifier column {id_column!r} cannot be used as a predictor"
                )
            if label in predictors:
                raise ModelFitError(
                    f"Label column {label!r} cannot be used as a predictor"
                )
            missing = [column for column in predictors if column not in data.columns]
            if missing:
                raise ModelFitError(
                    f"Training data missing predictor columns: {missing}"
                )
        else:
            predictors = [
                column for column in data.columns if column not in (label, id_column)
            ]
        if not predictors:
            raise ModelFitError("Training data has no predictor columns")
        return predictors

    def fit(self, data: pd.DataFrame) -> "ResponseModelWrapper":
        """Fit the response model to labeled customers.

        Parameters
        ----------
        data:
            Training rows: the label column, predictors, and optionally the
            identifier column (which is dropped).

        Returns
        -------
        ResponseModelWrapper:
            ``self``, fitted.

        Raises
        ------
        ModelFitError:
            If the label is missing or not 0/1, the data is empty, a predictor
            has zero variance or is a linear combination of others, the
            response is perfectly separated, or the solver does not converge
            to finite estimates.
        """
        label = self.config.label_column
        if label not in data.columns:
            raise ModelFitError(
                f"Training data missing label column {label!r}. "
                f"Available columns: {list(data.columns)}"
            )
        if data.empty:
            raise ModelFitError("Cannot fit response model on empty dataset")

        predictors = self._resolve_predictors(data)

        labels = data[label]
        if pd.api.types.is_bool_dtype(labels):
            labels = labels.astype(int)
        labels = pd.to_numeric(labels, errors="coerce")
        invalid = data.loc[~labels.isin([0, 1]), label]
        if not invalid.empty:
            raise ModelFitError(
                f"Label column {label!r} must only contain 0 or 1. "
                f"Found {len(invalid)} invalid values: "
                f"{invalid.unique().tolist()[:5]}"
            )

        names = _safe_names(predictors + [label])
        frame = data[predictors].rename(columns=names)
        frame[names[label]] = labels.astype(int).to_numpy()
        complete = frame.dropna()
        dropped = len(frame) - len(complete)
        if dropped:
            logger.warning(
                f"Dropped {dropped} of {len(frame)} training rows with missing values"
            )
        if complete.empty:
            raise ModelFitError("No complete training rows left after dropping nulls")

        constant = [
            column
            for column in predictors
            if complete[names[column]].nunique(dropna=False) <= 1
        ]
        if constant:
            raise ModelFitError(
                f"Predictor columns have zero variance in the training data: {constant}"
            )

        terms = []
        self._levels = {}
        for column in predictors:
            safe = names[column]
            if _is_categorical(complete[safe]):
                terms.append(f"C({safe})")
                self._levels[column] = set(complete[safe].unique())
            else:
                terms.append(safe)
        formula = f"{names[label]} ~ " + " + ".join(terms)

        logger.info(
            f"Fitting response model on {len(complete)} customers with "
            f"{len(predictors)} predictors: {formula}"
        )
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", PerfectSeparationWarning)
                results = smf.glm(
                    formula, data=complete, family=sm.families.Binomial()
                ).fit(method=self.config.method, maxiter=self.config.max_iter)
        except PerfectSeparationWarning as exc:
            raise ModelFitError(
                f"Response is perfectly separated by the predictors: {exc}"
            ) from exc
        except (np.linalg.LinAlgError, ValueError) as exc:
            raise ModelFitError(f"Response model fit failed: {exc}") from exc

        exog = np.asarray(results.model.exog)
        rank = np.linalg.matrix_rank(exog)
        if rank < exog.shape[1]:
            raise ModelFitError(
                f"Design matrix is singular (rank {rank} for {exog.shape[1]} "
                f"terms); some predictors are linear combinations of others: "
                f"{results.model.exog_names}"
            )
        if not _converged(results):
            raise ModelFitError(
                f"Response model did not converge within {self.config.max_iter} "
                f"iterations ({self.config.method})"
            )
        if not np.all(np.isfinite(results.params)):
            raise ModelFitError(
                "Response model fit produced non-finite coefficients: "
                f"{results.params.to_dict()}"
            )

        self.results = results
        self.formula = formula
        self.predictors = predictors
        self._names = names
        return self

    @property
    def coefficients(self) -> pd.Series:
        """Fitted coefficients indexed by formula term."""
        if self.results is None:
            raise RuntimeError("Model has not been fitted. Call fit() first.")
        return self.results.params.copy()

    def predict(
        self, data: pd.DataFrame, with_std_error: bool = False
    ) -> pd.DataFrame:
        """Predict response probabilities.

        Parameters
        ----------
        data:
            Predictor columns only. The identifier column must already be
            removed.
        with_std_error:
            Also return the standard error of each predicted probability.

        Returns
        -------
        pd.DataFrame:
            One row per input row, in input order, with column
            ``probability`` (and ``std_error`` when requested).

        Raises
        ------
        RuntimeError:
            If the model has not been fitted.
        ScoringError:
            If the identifier column is present, predictor columns are
            missing or null, or a categorical value was not seen in training.
        """
        if self.results is None:
            raise RuntimeError("Model has not been fitted. Call fit() before predict().")

        output_columns = PREDICTION_COLUMNS if with_std_error else PREDICTION_COLUMNS[:1]
        id_column = self.config.id_column
        if id_column in data.columns:
            raise ScoringError(
                f"Identifier column {id_column!r} must be removed before prediction"
            )
        missing = [column for column in self.predictors if column not in data.columns]
        if missing:
            raise ScoringError(
                f"Scoring data missing predictor columns: {missing}. "
                f"Model was trained on: {self.predictors}"
            )
        if data.empty:
            return pd.DataFrame(columns=output_columns)

        null_columns = [
            column for column in self.predictors if data[column].isnull().any()
        ]
        if null_columns:
            raise ScoringError(
                f"Null values found in predictor columns: {null_columns}. "
                "Every scoring row needs a complete set of predictors."
            )
        for column, levels in self._levels.items():
            unseen = set(data[column].unique()) - levels
            if unseen:
                raise ScoringError(
                    f"Column {column!r} has values not seen in training: "
                    f"{sorted(map(str, unseen))[:5]}"
                )

        frame = data[self.predictors].rename(columns=self._names).reset_index(drop=True)
        if with_std_error:
            summary = self.results.get_prediction(frame).summary_frame()
            return pd.DataFrame(
                {
                    "probability": summary["mean"].to_numpy(),
                    "std_error": summary["mean_se"].to_numpy(),
                }
            )
        return pd.DataFrame(
            {"probability": np.asarray(self.results.predict(frame), dtype=float)}
        )


__all__ = ["ResponseModelConfig", "ResponseModelWrapper"]
