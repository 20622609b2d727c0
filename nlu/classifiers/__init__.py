"""NLU Classifiers - движок распознавания и его корпус."""

from .corpus import Corpus, IntentDefinition, EntityDefinition
from .llm_engine import LLMRecognitionEngine

__all__ = [
    "Corpus",
    "IntentDefinition",
    "EntityDefinition",
    "LLMRecognitionEngine",
]
