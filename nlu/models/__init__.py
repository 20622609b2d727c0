"""NLU Models - dataclasses для распознавания и роутинга."""

from .result import Entity, RecognitionResult
from .context import ConversationContext
from .routing import (
    RoutingDecision,
    RoutingHooks,
    RoutingAction,
    RecognitionOutcome,
    TurnRecognition,
)

__all__ = [
    "Entity",
    "RecognitionResult",
    "ConversationContext",
    "RoutingDecision",
    "RoutingHooks",
    "RoutingAction",
    "RecognitionOutcome",
    "TurnRecognition",
]
