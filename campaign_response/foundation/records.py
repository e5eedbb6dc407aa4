"""Record types for each stage of the response modeling pipeline.

Every stage of the pipeline produces rows of one fixed shape. The record
types below document those shapes and validate individual rows when the
pipeline output is converted back into Python objects (see
:mod:`campaign_response.pandas`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class SourceColumns:
    """Column names used by the loaders, the aggregator and the joins.

    Attributes
    ----------
    customer_id:
        Customer identifier in the transaction and campaign sample files.
    day_number:
        Day number of a transaction line item.
    extended_price:
        Monetary amount of a transaction line item.
    response:
        Boolean response flag in the campaign sample.
    demographics_id:
        Customer identifier as named in the demographics file. It is
        renamed to :attr:`canonical_id` right after loading.
    canonical_id:
        Identifier used by every join downstream of the loaders.
    label:
        Name given to the numeric 0/1 response label in the training set.
    txns:
        Output column holding the distinct trip count per customer.
    spend:
        Output column holding the total spend per customer.
    """

    customer_id: str = "cust_id"
    day_number: str = "day_num"
    extended_price: str = "extended_price"
    response: str = "respondYes"
    demographics_id: str = "cust_id"
    canonical_id: str = "ID"
    label: str = "respond"
    txns: str = "txns"
    spend: str = "spend"


@dataclass(frozen=True)
class TransactionRecord:
    """One transaction line item."""

    cust_id: str
    day_num: int
    extended_price: float


@dataclass(frozen=True)
class DemographicRecord:
    """Demographic attributes of one customer.

    The attribute set is open: the demographics file decides which
    columns exist, and all of them become candidate predictors.
    """

    customer_id: str
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CampaignSampleRecord:
    """A customer who received the offer, with their response."""

    cust_id: str
    respond_yes: bool


@dataclass(frozen=True)
class CustomerFeatureRow:
    """Per-customer transaction features.

    Attributes
    ----------
    cust_id:
        Customer identifier.
    txns:
        Number of distinct day numbers with a purchase (shopping trips).
        Several line items bought on the same day count once.
    spend:
        Sum of extended price over every line item of the customer.
    """

    cust_id: str
    txns: int
    spend: float

    def __post_init__(self) -> None:
        if self.txns < 1:
            raise ValueError(
                f"txns must be at least 1: {self.txns} (cust_id={self.cust_id})"
            )
        if not math.isfinite(self.spend):
            raise ValueError(
                f"spend must be finite: {self.spend} (cust_id={self.cust_id})"
            )


@dataclass(frozen=True)
class JoinedCustomerRow:
    """Customer features joined with demographic attributes."""

    ID: str
    txns: int
    spend: float
    attributes: Mapping[str, Any]


@dataclass(frozen=True)
class TrainingRow(JoinedCustomerRow):
    """Joined customer who received the offer, with a 0/1 label."""

    respond: int

    def __post_init__(self) -> None:
        if self.respond not in (0, 1):
            raise ValueError(
                f"respond must be 0 or 1: {self.respond} (ID={self.ID})"
            )


@dataclass(frozen=True)
class ScoringRow(JoinedCustomerRow):
    """Joined customer who did not receive the offer."""


@dataclass(frozen=True)
class ScoredResult:
    """Predicted response probability for one customer.

    ``std_error`` is only populated when predictions were requested with
    standard errors.
    """

    customer_id: str
    probability: float
    std_error: float | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError(
                f"probability must be within [0, 1]: {self.probability} "
                f"(customer_id={self.customer_id})"
            )
