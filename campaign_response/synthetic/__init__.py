"""Synthetic data generation utilities.

This package produces realistic-but-fake campaign datasets to exercise the
response modeling pipeline without accessing production data.
"""

from .generator import (
    CAMPAIGN_SAMPLE_FILE,
    DEMOGRAPHICS_FILE,
    TRANSACTIONS_FILE,
    SyntheticConfig,
    SyntheticDataset,
    generate_campaign_dataset,
    write_campaign_dataset,
)

__all__ = [
    "CAMPAIGN_SAMPLE_FILE",
    "DEMOGRAPHICS_FILE",
    "TRANSACTIONS_FILE",
    "SyntheticConfig",
    "SyntheticDataset",
    "generate_campaign_dataset",
    "write_campaign_dataset",
]
