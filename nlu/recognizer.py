"""
Recognizer - распознавание хода диалога с учётом контекста беседы.

Ход: загрузка контекста -> распознавание -> сохранение (если контекст
изменён). Шаги выполняются последовательно; тайм-аутов на этом уровне нет.
"""

import logging
from typing import Any, Callable, List, Optional

from config.constants import DEFAULT_THRESHOLD, FRAMEWORK_DIALOG_PREFIX
from nlu.context_manager import ConversationContextStore
from nlu.engine import RecognitionEngine
from nlu.errors import RecognitionUnavailableError
from nlu.models import (
    ConversationContext,
    RecognitionOutcome,
    RecognitionResult,
    TurnRecognition,
)
from nlu.processor import ProcessedUtterance, UtteranceProcessor
from utils.logger import setup_logger
from utils.metrics import metrics

logger = setup_logger(name="recognizer", level=logging.INFO)

RecognizeCallback = Callable[[Optional[Exception], Optional[RecognitionResult]], Any]


def get_utterance(turn: Any) -> Optional[str]:
    """Текст сообщения хода или None."""
    if turn is None:
        return None
    message = getattr(turn, "message", None)
    text = getattr(message, "text", None) if message is not None else None
    return text or None


class Recognizer:
    """
    Рекогнайзер для хоста диалогов.

    Движок и хранилище контекста передаются явно; значение по умолчанию
    для движка не создаётся.
    """

    def __init__(
        self,
        engine: RecognitionEngine,
        conversation_context: ConversationContextStore,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        if engine is None:
            raise ValueError("Recognizer requires a recognition engine")
        if conversation_context is None:
            raise ValueError("Recognizer requires a conversation context store")
        self.engine = engine
        self.conversation_context = conversation_context
        self.threshold = threshold
        self.processor = UtteranceProcessor(engine, threshold=threshold)

    def train(self):
        self.engine.train()

    def load(self, filename: str):
        self.engine.load(filename)

    def save(self, filename: str):
        self.engine.save(filename)

    def load_excel(self, filename: str, model_path: Optional[str] = None):
        """Импорт корпуса из Excel, обучение и сохранение модели."""
        self.engine.load_excel(filename)
        self.train()
        if model_path:
            self.save(model_path)

    async def process(
        self,
        context: Optional[ConversationContext],
        locale: Optional[str],
        utterance: str,
    ) -> ProcessedUtterance:
        """Распознать высказывание; ошибки движка -> RecognitionUnavailableError."""
        try:
            return await self.processor.process(context, locale, utterance)
        except RecognitionUnavailableError:
            raise
        except Exception as e:
            logger.error(f"Движок распознавания недоступен: {e}")
            raise RecognitionUnavailableError(f"Recognition engine failed: {e}", utterance=utterance) from e

    async def recognize_utterance(self, utterance: str, locale: Optional[str] = None) -> RecognitionResult:
        """Распознать высказывание без контекста беседы."""
        processed = await self.process(ConversationContext(), locale, utterance)
        return processed.result

    @staticmethod
    def get_dialog_id(turn: Any) -> str:
        """
        Последний диалог разработчика (не фреймворка) в стеке.

        Стек просматривается снизу вверх до первого id с префиксом "*:".
        """
        dialog_stack = getattr(turn, "dialog_stack", None)
        if not callable(dialog_stack):
            return ""
        stack: List[str] = dialog_stack() or []
        for dialog_id in stack:
            if dialog_id.startswith(FRAMEWORK_DIALOG_PREFIX):
                return dialog_id[len(FRAMEWORK_DIALOG_PREFIX):]
        return ""

    async def recognize(self, turn: Any, callback: Optional[RecognizeCallback] = None) -> Optional[TurnRecognition]:
        """
        Распознать сообщение хода.

        Args:
            turn: Ход (message.text, locale, conversation_id, dialog_stack())
            callback: Необязательный callback(error, result)

        Returns:
            TurnRecognition; None, если ошибка распознавания передана в callback

        Raises:
            RecognitionUnavailableError: Движок не ответил и callback не задан
        """
        try:
            recognition = await self._recognize(turn)
        except RecognitionUnavailableError as e:
            if callback is None:
                raise
            callback(e, None)
            return None

        if callback is not None:
            callback(None, recognition.result)
        return recognition

    async def _recognize(self, turn: Any) -> TurnRecognition:
        utterance = get_utterance(turn)
        conversation_id = getattr(turn, "conversation_id", None)

        if not utterance:
            metrics.record_recognition(RecognitionOutcome.NO_TEXT.value, conversation_id)
            return TurnRecognition(result=RecognitionResult.neutral(), outcome=RecognitionOutcome.NO_TEXT)

        locale = getattr(turn, "locale", None)

        try:
            context = await self.conversation_context.get_conversation_context(turn)
        except Exception as e:
            logger.warning(f"Контекст беседы {conversation_id} недоступен, распознаём с пустым: {e}")
            processed = await self.process(ConversationContext(), locale, utterance)
            return self._finish(
                conversation_id, processed, RecognitionOutcome.CONTEXT_UNAVAILABLE, error=e
            )

        context.dialog_id = self.get_dialog_id(turn)
        processed = await self.process(context, locale, utterance)

        if not processed.modified:
            return self._finish(conversation_id, processed, RecognitionOutcome.DELIVERED)

        try:
            await self.conversation_context.set_conversation_context(turn, processed.context)
        except Exception as e:
            logger.error(f"Контекст беседы {conversation_id} не сохранён: {e}")
            return self._finish(
                conversation_id, processed, RecognitionOutcome.CONTEXT_NOT_PERSISTED, error=e
            )
        return self._finish(conversation_id, processed, RecognitionOutcome.DELIVERED)

    def _finish(
        self,
        conversation_id: Optional[str],
        processed: ProcessedUtterance,
        outcome: RecognitionOutcome,
        error: Optional[Exception] = None,
    ) -> TurnRecognition:
        metrics.record_recognition(outcome.value, conversation_id, processed.result.intent)
        return TurnRecognition(
            result=processed.result,
            outcome=outcome,
            context=ConversationContext(processed.context.to_storage()),
            error=error,
        )
