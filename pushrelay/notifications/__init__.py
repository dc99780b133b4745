"""
Push notification dispatch: token classification, provider fan-out and result aggregation.
"""

from .classifier import PushProvider, PushToken, classify, classify_tokens
from .dispatcher import PushDispatcher
from .schemas import AggregateResult, DispatchOutcome

__all__ = [
    "PushProvider",
    "PushToken",
    "classify",
    "classify_tokens",
    "PushDispatcher",
    "AggregateResult",
    "DispatchOutcome",
]
