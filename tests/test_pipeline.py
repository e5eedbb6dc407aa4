"""Tests for the end-to-end pipeline."""

import pandas as pd
import pytest

from campaign_response.errors import InputError, ModelFitError
from campaign_response.foundation import (
    aggregate_customer_features,
    join_features_demographics,
    load_campaign_sample,
    load_demographics,
    load_transactions,
    split_campaign_population,
)
from campaign_response.models import score_customers
from campaign_response.pipeline import PipelineConfig, run_pipeline


class ConstantModel:
    predictors = ["age_band", "income", "txns", "spend"]

    def predict(self, data, with_std_error=False):
        return pd.DataFrame({"probability": [0.5] * len(data)})


def _config(paths, **kwargs):
    return PipelineConfig(
        transactions_path=paths["transactions"],
        demographics_path=paths["demographics"],
        campaign_sample_path=paths["campaign_sample"],
        **kwargs,
    )


class TestWorkedExample:
    """Two customers, one of them in the campaign sample."""

    def test_stages(self, session, example_files):
        transactions = load_transactions(session, example_files["transactions"])
        demographics = load_demographics(session, example_files["demographics"])
        sample = load_campaign_sample(session, example_files["campaign_sample"])

        features = aggregate_customer_features(session, transactions)
        feature_rows = session.to_frame(features, order_by=["cust_id"])
        assert feature_rows.to_dict("records") == [
            {"cust_id": "C1", "txns": 1, "spend": 15.0},
            {"cust_id": "C2", "txns": 1, "spend": 20.0},
        ]

        joined = join_features_demographics(session, features, demographics)
        training, scoring = split_campaign_population(session, joined, sample)

        training_frame = session.to_frame(training)
        scoring_frame = session.to_frame(scoring)
        assert training_frame["ID"].tolist() == ["C1"]
        assert training_frame["respond"].tolist() == [1]
        assert scoring_frame["ID"].tolist() == ["C2"]

        ranked = score_customers(ConstantModel(), scoring_frame)
        assert [r.customer_id for r in ranked] == ["C2"]

    def test_single_training_row_cannot_fit(self, example_files):
        """One labeled customer leaves every predictor constant."""
        with pytest.raises(ModelFitError, match="zero variance"):
            run_pipeline(_config(example_files))


class TestRunPipeline:
    """Test run_pipeline on synthetic data."""

    def test_ranks_the_scoring_population(self, synthetic_files):
        result = run_pipeline(_config(synthetic_files))

        assert result.joined_count == result.feature_count
        assert len(result.training) + len(result.scoring) == result.joined_count
        assert len(result.ranked) == len(result.scoring)
        assert {r.customer_id for r in result.ranked} == set(result.scoring["ID"])
        assert all(
            a.probability >= b.probability
            for a, b in zip(result.ranked, result.ranked[1:])
        )

    def test_populations_are_disjoint(self, synthetic_files):
        result = run_pipeline(_config(synthetic_files))

        assert set(result.training["ID"]).isdisjoint(result.scoring["ID"])

    def test_identifier_never_a_predictor(self, synthetic_files):
        result = run_pipeline(_config(synthetic_files))

        assert "ID" not in result.model.predictors
        assert "respond" not in result.model.predictors
        assert set(result.model.predictors) == {
            "age_band",
            "region",
            "household_size",
            "income",
            "txns",
            "spend",
        }

    def test_std_error_and_plan(self, synthetic_files):
        result = run_pipeline(
            _config(synthetic_files, with_std_error=True, explain=True)
        )

        assert all(r.std_error is not None for r in result.ranked)
        assert result.join_plan
        assert "CROSS_PRODUCT" not in result.join_plan

    def test_missing_input_aborts(self, synthetic_files, tmp_path):
        paths = dict(synthetic_files, campaign_sample=tmp_path / "nope.parquet")

        with pytest.raises(InputError):
            run_pipeline(_config(paths))
