"""Shared fixtures for the campaign response tests."""

import numpy as np
import pandas as pd
import pytest

from campaign_response.foundation.session import QuerySession
from campaign_response.synthetic import (
    SyntheticConfig,
    generate_campaign_dataset,
    write_campaign_dataset,
)


@pytest.fixture
def session():
    """In-memory query session, closed after the test."""
    with QuerySession() as s:
        yield s


@pytest.fixture
def example_frames():
    """The three-row worked example: C1 buys twice on day 1, C2 once."""
    transactions = pd.DataFrame(
        {
            "cust_id": ["C1", "C1", "C2"],
            "day_num": [1, 1, 1],
            "extended_price": [10.0, 5.0, 20.0],
        }
    )
    demographics = pd.DataFrame(
        {
            "cust_id": ["C1", "C2"],
            "age_band": ["18-34", "55+"],
            "income": [42_000.0, 61_000.0],
        }
    )
    sample = pd.DataFrame({"cust_id": ["C1"], "respondYes": [True]})
    return transactions, demographics, sample


@pytest.fixture
def example_files(tmp_path, example_frames):
    """Worked example written as parquet files."""
    transactions, demographics, sample = example_frames
    paths = {
        "transactions": tmp_path / "transactions.parquet",
        "demographics": tmp_path / "demographics.parquet",
        "campaign_sample": tmp_path / "campaign_sample.parquet",
    }
    transactions.to_parquet(paths["transactions"], index=False)
    demographics.to_parquet(paths["demographics"], index=False)
    sample.to_parquet(paths["campaign_sample"], index=False)
    return paths


@pytest.fixture
def synthetic_files(tmp_path):
    """Seeded synthetic dataset written as parquet files."""
    dataset = generate_campaign_dataset(SyntheticConfig(n_customers=400, seed=7))
    return write_campaign_dataset(dataset, tmp_path / "synthetic")


@pytest.fixture
def training_frame():
    """Labeled customers with a real but noisy response signal."""
    rng = np.random.default_rng(0)
    n = 300
    txns = rng.poisson(5, size=n) + 1
    spend = np.round(txns * rng.gamma(4.0, 12.0, size=n), 2)
    region = rng.choice(["north", "south", "east"], size=n)
    logit = -2.0 + 0.25 * txns + 0.004 * spend + np.where(region == "east", 0.5, 0.0)
    respond = (rng.random(n) < 1.0 / (1.0 + np.exp(-logit))).astype(int)
    return pd.DataFrame(
        {
            "ID": [f"C-{i + 1}" for i in range(n)],
            "region": region,
            "txns": txns,
            "spend": spend,
            "respond": respond,
        }
    )
