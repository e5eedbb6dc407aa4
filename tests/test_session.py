"""Tests for the query session handle."""

import pandas as pd
import pytest

from campaign_response.foundation import Dataset, QuerySession, SessionConfig
from campaign_response.foundation.session import quote_identifier, quote_literal


def test_quoting():
    assert quote_identifier('odd"name') == '"odd""name"'
    assert quote_literal("it's") == "'it''s'"


def test_create_table_describes_result(session):
    dataset = session.create_table("numbers", "SELECT 1 AS n, 'a' AS label")

    assert isinstance(dataset, Dataset)
    assert dataset.columns == ["n", "label"]
    assert dataset.row_count == 1


def test_register_frame_round_trip_order(session):
    frame = pd.DataFrame({"ID": ["b", "a", "c"], "x": [2, 1, 3]})

    dataset = session.register_frame("frame", frame)
    result = session.to_frame(dataset, order_by=["ID"])

    assert result["ID"].tolist() == ["a", "b", "c"]
    assert result["x"].tolist() == [1, 2, 3]


def test_column_lookup_is_case_insensitive(session):
    dataset = session.create_table("t", "SELECT 1 AS ID")

    assert dataset.has_column("id")
    with pytest.raises(KeyError, match="missing required columns"):
        dataset.require_columns(["ID", "spend"])


def test_thread_setting_applied():
    with QuerySession(SessionConfig(threads=2)) as session:
        assert int(session.scalar("SELECT current_setting('threads')")) == 2


def test_invalid_thread_count_rejected():
    with pytest.raises(ValueError, match="threads must be positive"):
        QuerySession(SessionConfig(threads=0))


def test_default_config_not_shared():
    with QuerySession() as first, QuerySession() as second:
        assert first.config == SessionConfig()
        assert first.config is not second.config


def test_dataset_dtype_lookup(session):
    dataset = session.create_table("typed", "SELECT 1::BIGINT AS n, 'a' AS s")

    assert dataset.dtype("N") == "BIGINT"
    assert dataset.dtype("s") == "VARCHAR"
    with pytest.raises(KeyError, match="no column"):
        dataset.dtype("missing")
