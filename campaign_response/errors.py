"""Exception types raised by the response modeling pipeline.

Every failure in the pipeline is fatal. The exceptions subclass
``ValueError`` so callers that already guard data problems with
``except ValueError`` keep working, while the narrower types let them
tell the failing stage apart.
"""

from __future__ import annotations


class ResponsePipelineError(ValueError):
    """Base class for all pipeline failures."""


class InputError(ResponsePipelineError):
    """Input file is missing, unreadable, in the wrong format or schema."""


class JoinKeyError(ResponsePipelineError):
    """Join has no key predicate or produced an unexpected row count."""


class ModelFitError(ResponsePipelineError):
    """Training data cannot produce a valid model."""


class ScoringError(ResponsePipelineError):
    """Scoring data does not match the fitted model."""


__all__ = [
    "InputError",
    "JoinKeyError",
    "ModelFitError",
    "ResponsePipelineError",
    "ScoringError",
]
