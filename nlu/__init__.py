"""
NLU (Natural Language Understanding) модуль.

Распознавание хода диалога:
- Порог уверенности для намерений
- Перенос сущностей в контекст беседы
- Хранение контекста беседы
- Решение о маршруте хода в хосте диалогов
"""

from .models import (
    Entity,
    RecognitionResult,
    ConversationContext,
    RoutingDecision,
    RoutingHooks,
    RoutingAction,
    RecognitionOutcome,
    TurnRecognition,
)
from .errors import (
    NLUError,
    RecognitionUnavailableError,
    ContextStoreError,
    EngineNotTrainedError,
    CorpusError,
)
from .engine import RecognitionEngine
from .context_manager import (
    ConversationContextStore,
    MemoryConversationContext,
    SqliteConversationContext,
)
from .processor import UtteranceProcessor, ProcessedUtterance
from .recognizer import Recognizer
from .routing import RoutingDecider

__all__ = [
    # Models
    "Entity",
    "RecognitionResult",
    "ConversationContext",
    "RoutingDecision",
    "RoutingHooks",
    "RoutingAction",
    "RecognitionOutcome",
    "TurnRecognition",
    # Errors
    "NLUError",
    "RecognitionUnavailableError",
    "ContextStoreError",
    "EngineNotTrainedError",
    "CorpusError",
    # Pipeline
    "RecognitionEngine",
    "ConversationContextStore",
    "MemoryConversationContext",
    "SqliteConversationContext",
    "UtteranceProcessor",
    "ProcessedUtterance",
    "Recognizer",
    "RoutingDecider",
]
