"""
Utterance Processor - порог уверенности и слияние сущностей с контекстом.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from config.constants import DEFAULT_THRESHOLD
from nlu.engine import RecognitionEngine
from nlu.models import ConversationContext, RecognitionResult
from utils.logger import setup_logger

logger = setup_logger(name="utterance_processor", level=logging.INFO)


@dataclass
class ProcessedUtterance:
    """
    Результат обработки высказывания.

    Attributes:
        result: Результат распознавания (answer очищен, если не принят)
        context: Новый контекст с применёнными сущностями
        modified: Были ли записаны сущности в контекст
    """
    result: RecognitionResult
    context: ConversationContext
    modified: bool = False


class UtteranceProcessor:
    """
    Применяет порог к результату движка и переносит сущности в контекст.

    Исходный контекст не изменяется: возвращается копия с применёнными
    сущностями, а сохранение решает вызывающий.
    """

    def __init__(self, engine: RecognitionEngine, threshold: float = DEFAULT_THRESHOLD):
        self.engine = engine
        self.threshold = threshold

    async def process(
        self,
        context: Optional[ConversationContext],
        locale: Optional[str],
        utterance: str,
    ) -> ProcessedUtterance:
        """
        Распознать высказывание в контексте.

        Args:
            context: Контекст диалога (None - пустой)
            locale: Локаль; None - локаль движка по умолчанию
            utterance: Текст высказывания

        Returns:
            ProcessedUtterance
        """
        context = ConversationContext(context or {})

        if locale:
            response = await self.engine.process(utterance, context.copy(), locale=locale)
        else:
            response = await self.engine.process(utterance, context.copy())

        if not response.is_confident(self.threshold):
            logger.debug(f"Отклонено: intent={response.intent}, score={response.score:.2f} < {self.threshold}")
            return ProcessedUtterance(result=replace(response, answer=None), context=context)

        modified = False
        for entity in response.entities:
            # При совпадении имён побеждает последняя сущность
            context[entity.entity] = entity.option
            modified = True

        return ProcessedUtterance(result=response, context=context, modified=modified)
