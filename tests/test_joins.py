"""Tests for the keyed joins and the training/scoring split."""

import pandas as pd
import pytest

from campaign_response.errors import JoinKeyError
from campaign_response.foundation import (
    aggregate_customer_features,
    build_scoring_set,
    build_training_set,
    explain_join,
    join_features_demographics,
    join_tables,
    split_campaign_population,
)
from campaign_response.foundation.joins import CARTESIAN_OPERATOR


@pytest.fixture
def tables(session):
    """Features for C1, C2, C4; demographics for C1, C2, C3; sample C1, C3."""
    transactions = session.register_frame(
        "transactions",
        pd.DataFrame(
            {
                "cust_id": ["C1", "C1", "C2", "C4"],
                "day_num": [1, 2, 1, 3],
                "extended_price": [10.0, 5.0, 20.0, 7.5],
            }
        ),
    )
    features = aggregate_customer_features(session, transactions)
    demographics = session.register_frame(
        "demographics",
        pd.DataFrame(
            {
                "ID": ["C1", "C2", "C3"],
                "region": ["north", "south", "east"],
                "income": [40_000.0, 52_000.0, 61_000.0],
            }
        ),
    )
    sample = session.register_frame(
        "campaign_sample",
        pd.DataFrame({"cust_id": ["C1", "C3"], "respondYes": [True, False]}),
    )
    return features, demographics, sample


class TestJoinFeaturesDemographics:
    """Test join_features_demographics."""

    def test_one_row_per_customer_in_both(self, session, tables):
        features, demographics, _ = tables

        joined = join_features_demographics(session, features, demographics)

        assert joined.row_count == 2
        assert joined.columns == ["ID", "region", "income", "txns", "spend"]
        frame = session.to_frame(joined, order_by=["ID"])
        assert frame["ID"].tolist() == ["C1", "C2"]
        assert frame["txns"].tolist() == [2, 1]
        assert frame["spend"].tolist() == pytest.approx([15.0, 20.0])

    def test_bounded_by_smaller_input(self, session, tables):
        features, demographics, _ = tables

        joined = join_features_demographics(session, features, demographics)

        assert joined.row_count <= min(features.row_count, demographics.row_count)

    def test_duplicate_demographics_rejected(self, session, tables):
        """Two demographic rows for one customer would duplicate features."""
        features, _, _ = tables
        demographics = session.register_frame(
            "demographics_dup",
            pd.DataFrame({"ID": ["C1", "C1", "C2"], "region": ["n", "s", "e"]}),
        )

        with pytest.raises(JoinKeyError, match="not unique"):
            join_features_demographics(session, features, demographics)


class TestJoinTables:
    """Test join_tables key handling."""

    def test_missing_predicate_rejected(self, session, tables):
        features, demographics, _ = tables

        with pytest.raises(JoinKeyError, match="no key predicate"):
            join_tables(session, demographics, features, name="bad", on=None)

    def test_cartesian_product_when_requested(self, session, tables):
        """Without a predicate every row pairs with every row."""
        features, demographics, _ = tables

        crossed = join_tables(
            session,
            demographics,
            features,
            name="crossed",
            on=None,
            allow_cartesian=True,
        )

        assert crossed.row_count == features.row_count * demographics.row_count

    def test_unknown_key_column_rejected(self, session, tables):
        features, demographics, _ = tables

        with pytest.raises(JoinKeyError, match="customer_no"):
            join_tables(
                session, demographics, features, name="bad", on=("ID", "customer_no")
            )

    def test_plan_shows_cartesian_product(self, session, tables):
        features, demographics, _ = tables

        crossed = explain_join(session, demographics, features, on=None)
        keyed = explain_join(session, demographics, features, on=("ID", "cust_id"))

        assert CARTESIAN_OPERATOR in crossed
        assert CARTESIAN_OPERATOR not in keyed


class TestCampaignSplit:
    """Test build_training_set, build_scoring_set and split_campaign_population."""

    def test_training_set_has_numeric_label(self, session, tables):
        features, demographics, sample = tables
        joined = join_features_demographics(session, features, demographics)

        training = build_training_set(session, joined, sample)

        frame = session.to_frame(training)
        assert training.columns[-1] == "respond"
        assert frame["ID"].tolist() == ["C1"]
        assert frame["respond"].tolist() == [1]
        assert pd.api.types.is_integer_dtype(frame["respond"])

    def test_scoring_set_excludes_sample(self, session, tables):
        features, demographics, sample = tables
        joined = join_features_demographics(session, features, demographics)

        scoring = build_scoring_set(session, joined, sample)

        frame = session.to_frame(scoring)
        assert frame["ID"].tolist() == ["C2"]
        assert scoring.columns == joined.columns

    def test_split_is_a_partition(self, session, tables):
        """Training and scoring are disjoint and cover the joined population."""
        features, demographics, sample = tables
        joined = join_features_demographics(session, features, demographics)

        training, scoring = split_campaign_population(session, joined, sample)

        joined_ids = set(session.to_frame(joined)["ID"])
        training_ids = set(session.to_frame(training)["ID"])
        scoring_ids = set(session.to_frame(scoring)["ID"])
        assert training_ids.isdisjoint(scoring_ids)
        assert training_ids | scoring_ids == joined_ids

    def test_duplicate_sample_rows_rejected(self, session, tables):
        features, demographics, _ = tables
        joined = join_features_demographics(session, features, demographics)
        sample = session.register_frame(
            "sample_dup",
            pd.DataFrame({"cust_id": ["C1", "C1"], "respondYes": [True, False]}),
        )

        with pytest.raises(JoinKeyError):
            split_campaign_population(session, joined, sample)

    def test_sample_without_key_rejected(self, session, tables):
        features, demographics, _ = tables
        joined = join_features_demographics(session, features, demographics)
        sample = session.register_frame(
            "sample_bad", pd.DataFrame({"customer": ["C1"], "respondYes": [True]})
        )

        with pytest.raises(JoinKeyError, match="cust_id"):
            build_training_set(session, joined, sample)
