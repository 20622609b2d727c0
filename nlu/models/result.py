"""Recognition result models."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from config.constants import NONE_INTENT


@dataclass
class Entity:
    """
    Сущность, извлечённая движком распознавания.

    Attributes:
        entity: Имя сущности (ключ в контексте диалога)
        option: Разрешённое значение
        source_text: Фрагмент высказывания, из которого извлечена сущность
        accuracy: Уверенность в извлечении (0.0 - 1.0)
    """
    entity: str
    option: Any
    source_text: Optional[str] = None
    accuracy: float = 1.0


@dataclass
class RecognitionResult:
    """
    Результат распознавания одного высказывания.

    Attributes:
        utterance: Исходный текст
        locale: Локаль, с которой шло распознавание
        score: Уверенность в намерении (0.0 - 1.0)
        intent: Намерение или NONE_INTENT
        entities: Сущности в порядке, возвращённом движком
        answer: Ответ; присутствует только для принятого распознавания
        classifications: Альтернативные намерения с их уверенностью
    """
    utterance: Optional[str] = None
    locale: Optional[str] = None
    score: float = 0.0
    intent: str = NONE_INTENT
    entities: List[Entity] = field(default_factory=list)
    answer: Optional[str] = None
    classifications: List[Tuple[str, float]] = field(default_factory=list)

    @classmethod
    def neutral(cls) -> "RecognitionResult":
        """Нейтральный результат: score 0.0 и намерение NONE_INTENT."""
        return cls(score=0.0, intent=NONE_INTENT)

    def is_none(self) -> bool:
        return self.intent == NONE_INTENT

    def is_confident(self, threshold: float) -> bool:
        """Проверяет, принимается ли распознавание при данном пороге."""
        return self.score >= threshold and not self.is_none()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
