"""Routing and recognition outcome models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from .context import ConversationContext
from .result import RecognitionResult


class RoutingDecision(Enum):
    """Решение хука роутинга: продолжить или прервать обработку."""
    CONTINUE = "continue"
    ABORT = "abort"


class RecognitionOutcome(Enum):
    """
    Исход распознавания хода.

    Attributes:
        DELIVERED: Результат доставлен, контекст в порядке
        CONTEXT_NOT_PERSISTED: Результат доставлен, но контекст не сохранён
        CONTEXT_UNAVAILABLE: Контекст не загрузился, распознавание с пустым контекстом
        NO_TEXT: В ходе нет текста, распознавание не выполнялось
    """
    DELIVERED = "delivered"
    CONTEXT_NOT_PERSISTED = "context_not_persisted"
    CONTEXT_UNAVAILABLE = "context_unavailable"
    NO_TEXT = "no_text"


class RoutingAction(Enum):
    """Действие, выбранное при роутинге хода."""
    ABORTED = "aborted"
    ANSWER_SENT = "answer_sent"
    DIALOG_STARTED = "dialog_started"
    ROUTE_SELECTED = "route_selected"
    ACTIVE_DIALOG = "active_dialog"


HookResult = Union[RoutingDecision, Awaitable[RoutingDecision]]


@dataclass
class RoutingHooks:
    """
    Точки расширения роутинга. Любой хук может быть обычной функцией
    или корутиной и должен вернуть RoutingDecision. Отсутствующий хук
    означает CONTINUE; хук, вернувший None, прерывает ход (с предупреждением
    в журнале), любое другое значение - TypeError.
    """
    on_begin_routing: Optional[Callable[[Any], HookResult]] = None
    on_recognized_routing: Optional[Callable[[Any, RecognitionResult], HookResult]] = None
    on_unrecognized_routing: Optional[Callable[[Any, RecognitionResult], HookResult]] = None
    on_no_text_routing: Optional[Callable[[Any], HookResult]] = None


@dataclass
class TurnRecognition:
    """
    Результат распознавания хода вместе с его исходом.

    Attributes:
        result: Результат распознавания
        outcome: Исход (в т.ч. деградации по контексту)
        context: Контекст после обработки (без временных ключей)
        error: Ошибка хранилища, если исход - деградация
    """
    result: RecognitionResult
    outcome: RecognitionOutcome
    context: Optional[ConversationContext] = None
    error: Optional[Exception] = None

    @property
    def context_persisted(self) -> bool:
        return self.outcome == RecognitionOutcome.DELIVERED
