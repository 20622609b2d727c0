"""
Recognition Engine - контракт внешнего движка распознавания.

Рекогнайзер не знает, как движок считает score и извлекает сущности;
он требует только score в [0, 1], намерение (с NONE_INTENT для
"ничего не найдено") и упорядоченный список сущностей.
"""

from abc import ABC, abstractmethod
from typing import Optional

from nlu.models import ConversationContext, RecognitionResult


class RecognitionEngine(ABC):
    """Абстрактный движок распознавания намерений и сущностей."""

    @abstractmethod
    async def process(
        self,
        utterance: str,
        context: ConversationContext,
        locale: Optional[str] = None,
    ) -> RecognitionResult:
        """
        Распознать высказывание.

        Args:
            utterance: Текст высказывания
            context: Контекст диалога (только чтение)
            locale: Локаль; None - локаль движка по умолчанию
        """

    @abstractmethod
    def train(self):
        """Обучить модель."""

    @abstractmethod
    def load(self, filename: str):
        """Загрузить модель из файла."""

    @abstractmethod
    def save(self, filename: str):
        """Сохранить модель в файл."""

    @abstractmethod
    def load_excel(self, filename: str):
        """Импортировать корпус из Excel."""
