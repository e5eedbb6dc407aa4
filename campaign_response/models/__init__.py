"""Response model and scoring utilities."""

from campaign_response.models.response_model import (
    ResponseModelConfig,
    ResponseModelWrapper,
)
from campaign_response.models.scoring import ResponsePredictor, score_customers

__all__ = [
    "ResponseModelConfig",
    "ResponseModelWrapper",
    "ResponsePredictor",
    "score_customers",
]
