from __future__ import annotations

from dataclasses import dataclass
import math
from pathlib import Path
import random
from typing import List, Optional

from campaign_response.foundation.records import (
    CampaignSampleRecord,
    DemographicRecord,
    SourceColumns,
    TransactionRecord,
)
from campaign_response.pandas import (
    campaign_sample_to_dataframe,
    demographics_to_dataframe,
    transactions_to_dataframe,
)

AGE_BANDS = ("18-34", "35-54", "55+")
REGIONS = ("north", "south", "east", "west")

TRANSACTIONS_FILE = "transactions.parquet"
DEMOGRAPHICS_FILE = "demographics.parquet"
CAMPAIGN_SAMPLE_FILE = "campaign_sample.parquet"


@dataclass(frozen=True)
class SyntheticConfig:
    """Configuration for the synthetic campaign dataset.

    Attributes
    ----------
    n_customers: Number of customers with demographics.
    days: Day numbers are drawn from ``1..days``.
    mean_trips: Average number of shopping trips per purchasing customer.
    no_purchase_rate: Share of customers without any transaction.
    sample_rate: Share of customers who received the offer.
    mean_line_price: Average extended price of a line item.
    base_logit: Intercept of the response propensity.
    trip_effect: Logit change per additional trip.
    spend_effect: Logit change per 100 of spend.
    seed: Optional RNG seed for reproducibility.
    """

    n_customers: int = 500
    days: int = 365
    mean_trips: float = 6.0
    no_purchase_rate: float = 0.05
    sample_rate: float = 0.4
    mean_line_price: float = 25.0
    base_logit: float = -2.0
    trip_effect: float = 0.15
    spend_effect: float = 0.2
    seed: Optional[int] = None


@dataclass(frozen=True)
class SyntheticDataset:
    transactions: List[TransactionRecord]
    demographics: List[DemographicRecord]
    campaign_sample: List[CampaignSampleRecord]


def _poisson(rng: random.Random, lam: float) -> int:
    # Knuth's algorithm; fine for the small rates used here
    if lam <= 0:
        return 0
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while p > limit:
        k += 1
        p *= rng.random()
    return k - 1


def _sample_price(rng: random.Random, mean: float) -> float:
    sigma = 0.5
    mu = math.log(max(mean, 0.01)) - 0.5 * sigma * sigma
    return round(max(math.exp(rng.normalvariate(mu, sigma)), 0.01), 2)


def generate_campaign_dataset(config: SyntheticConfig = SyntheticConfig()) -> SyntheticDataset:
    """Generate demographics, transactions and a campaign sample.

    Response labels follow a logistic model of trips, spend and age band,
    so a fitted response model has a signal to recover. Some customers
    never purchase and therefore drop out of the joined population.
    """

    if config.n_customers <= 0:
        raise ValueError("n_customers must be positive")
    if config.days <= 0:
        raise ValueError("days must be positive")
    for name in ("no_purchase_rate", "sample_rate"):
        value = getattr(config, name)
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be within [0, 1]: {value}")

    rng = random.Random(config.seed)
    transactions: List[TransactionRecord] = []
    demographics: List[DemographicRecord] = []
    sample: List[CampaignSampleRecord] = []

    for i in range(config.n_customers):
        customer_id = f"C-{i + 1}"
        age_band = rng.choice(AGE_BANDS)
        demographics.append(
            DemographicRecord(
                customer_id=customer_id,
                attributes={
                    "age_band": age_band,
                    "region": rng.choice(REGIONS),
                    "household_size": 1 + rng.randrange(5),
                    "income": round(rng.lognormvariate(math.log(55_000), 0.4), 2),
                },
            )
        )

        trips = 0
        spend = 0.0
        if rng.random() >= config.no_purchase_rate:
            trips = max(1, _poisson(rng, config.mean_trips))
            days = rng.sample(range(1, config.days + 1), min(trips, config.days))
            for day in days:
                # 1-3 line items per trip
                for _line in range(1 + rng.randrange(3)):
                    price = _sample_price(rng, config.mean_line_price)
                    spend += price
                    transactions.append(
                        TransactionRecord(
                            cust_id=customer_id, day_num=day, extended_price=price
                        )
                    )

        if rng.random() < config.sample_rate:
            logit = (
                config.base_logit
                + config.trip_effect * trips
                + config.spend_effect * spend / 100.0
                + (0.4 if age_band == "35-54" else 0.0)
            )
            probability = 1.0 / (1.0 + math.exp(-logit))
            sample.append(
                CampaignSampleRecord(
                    cust_id=customer_id, respond_yes=rng.random() < probability
                )
            )

    transactions.sort(key=lambda t: (t.cust_id, t.day_num))
    return SyntheticDataset(
        transactions=transactions, demographics=demographics, campaign_sample=sample
    )


def write_campaign_dataset(
    dataset: SyntheticDataset,
    directory: Path | str,
    columns: SourceColumns = SourceColumns(),
) -> dict[str, Path]:
    """Write the dataset as three parquet files and return their paths."""

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "transactions": out_dir / TRANSACTIONS_FILE,
        "demographics": out_dir / DEMOGRAPHICS_FILE,
        "campaign_sample": out_dir / CAMPAIGN_SAMPLE_FILE,
    }
    transactions_to_dataframe(dataset.transactions, columns).to_parquet(
        paths["transactions"], index=False
    )
    demographics_to_dataframe(dataset.demographics, columns).to_parquet(
        paths["demographics"], index=False
    )
    campaign_sample_to_dataframe(dataset.campaign_sample, columns).to_parquet(
        paths["campaign_sample"], index=False
    )
    return paths
