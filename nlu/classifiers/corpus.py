"""
Corpus - обучающий корпус движка распознавания.

Хранит намерения с примерами высказываний и ответами по локалям
и перечислимые сущности с синонимами. Сериализуется в JSON,
импортируется из Excel.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from nlu.errors import CorpusError
from utils.logger import setup_logger

logger = setup_logger(name="corpus", level=logging.INFO)

INTENTS_SHEET = "intents"
ANSWERS_SHEET = "answers"
ENTITIES_SHEET = "entities"


@dataclass
class IntentDefinition:
    """Намерение: примеры высказываний и ответы по локалям."""
    name: str
    utterances: Dict[str, List[str]] = field(default_factory=dict)
    answers: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class EntityDefinition:
    """Перечислимая сущность: опция -> синонимы."""
    name: str
    options: Dict[str, List[str]] = field(default_factory=dict)


class Corpus:
    """Корпус для обучения движка распознавания."""

    def __init__(self, name: str = "corpus", locales: Optional[List[str]] = None):
        self.name = name
        self._locales: List[str] = list(locales or [])
        self.intents: Dict[str, IntentDefinition] = {}
        self.entities: Dict[str, EntityDefinition] = {}

    @property
    def locales(self) -> List[str]:
        return list(self._locales)

    @property
    def default_locale(self) -> Optional[str]:
        return self._locales[0] if self._locales else None

    def add_locale(self, locale: str):
        if locale not in self._locales:
            self._locales.append(locale)

    def _intent(self, name: str) -> IntentDefinition:
        if name not in self.intents:
            self.intents[name] = IntentDefinition(name=name)
        return self.intents[name]

    def add_document(self, locale: str, utterance: str, intent: str):
        """Добавить пример высказывания для намерения."""
        self.add_locale(locale)
        self._intent(intent).utterances.setdefault(locale, []).append(utterance)

    def add_answer(self, locale: str, intent: str, answer: str):
        """Добавить ответ для намерения."""
        self.add_locale(locale)
        self._intent(intent).answers.setdefault(locale, []).append(answer)

    def add_named_entity_text(self, entity: str, option: str, texts: List[str]):
        """Добавить синонимы опции перечислимой сущности."""
        definition = self.entities.setdefault(entity, EntityDefinition(name=entity))
        synonyms = definition.options.setdefault(option, [])
        for text in texts:
            if text not in synonyms:
                synonyms.append(text)

    def answers_for(self, intent: str, locale: str) -> List[str]:
        definition = self.intents.get(intent)
        if not definition:
            return []
        return definition.answers.get(locale, [])

    def validate(self):
        """Проверить, что корпус пригоден для обучения."""
        if not self.intents:
            raise CorpusError(f"Corpus '{self.name}' has no intents")
        for definition in self.intents.values():
            if not any(definition.utterances.values()):
                raise CorpusError(f"Intent '{definition.name}' has no utterances")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "locales": self.locales,
            "intents": [
                {"name": i.name, "utterances": i.utterances, "answers": i.answers}
                for i in self.intents.values()
            ],
            "entities": [
                {"name": e.name, "options": e.options}
                for e in self.entities.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Corpus":
        try:
            corpus = cls(name=data.get("name", "corpus"), locales=data.get("locales", []))
            for item in data.get("intents", []):
                definition = corpus._intent(item["name"])
                for locale, utterances in item.get("utterances", {}).items():
                    corpus.add_locale(locale)
                    definition.utterances.setdefault(locale, []).extend(utterances)
                for locale, answers in item.get("answers", {}).items():
                    corpus.add_locale(locale)
                    definition.answers.setdefault(locale, []).extend(answers)
            for item in data.get("entities", []):
                for option, texts in item.get("options", {}).items():
                    corpus.add_named_entity_text(item["name"], option, texts)
        except (KeyError, TypeError, AttributeError) as e:
            raise CorpusError(f"Malformed corpus data: {e}") from e
        return corpus

    def save(self, filename: str):
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(f"Корпус '{self.name}' сохранён в {filename}")

    @classmethod
    def load(cls, filename: str) -> "Corpus":
        try:
            with open(filename, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CorpusError(f"Cannot load corpus from {filename}: {e}") from e
        corpus = cls.from_dict(data)
        logger.info(f"Корпус '{corpus.name}' загружен из {filename}: {len(corpus.intents)} намерений")
        return corpus

    @classmethod
    def from_excel(cls, filename: str) -> "Corpus":
        """
        Импорт корпуса из Excel.

        Листы (регистр имён не важен):
            Intents: locale, intent, utterance
            Answers: locale, intent, answer
            Entities: entity, option, synonyms (через запятую)
        """
        try:
            sheets = pd.read_excel(filename, sheet_name=None, dtype=str)
        except (OSError, ValueError) as e:
            raise CorpusError(f"Cannot read excel corpus {filename}: {e}") from e

        sheets = {name.strip().lower(): frame for name, frame in sheets.items()}
        if INTENTS_SHEET not in sheets:
            raise CorpusError(f"Excel corpus {filename} has no '{INTENTS_SHEET}' sheet")

        corpus = cls(name=os.path.splitext(os.path.basename(filename))[0])
        for row in _rows(sheets[INTENTS_SHEET], ("locale", "intent", "utterance")):
            corpus.add_document(row["locale"], row["utterance"], row["intent"])
        for row in _rows(sheets.get(ANSWERS_SHEET), ("locale", "intent", "answer")):
            corpus.add_answer(row["locale"], row["intent"], row["answer"])
        for row in _rows(sheets.get(ENTITIES_SHEET), ("entity", "option"), optional=("synonyms",)):
            texts = [t.strip() for t in row.get("synonyms", "").split(",") if t.strip()]
            corpus.add_named_entity_text(row["entity"], row["option"], texts or [row["option"]])

        logger.info(f"Импортирован корпус из {filename}: {len(corpus.intents)} намерений, {len(corpus.entities)} сущностей")
        return corpus


def _rows(frame: Optional[pd.DataFrame], columns: tuple, optional: tuple = ()):
    """Строки листа как словари; строки без обязательных значений пропускаются."""
    if frame is None:
        return
    frame = frame.rename(columns=lambda c: str(c).strip().lower())
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise CorpusError(f"Excel sheet is missing columns: {', '.join(missing)}")
    present = [c for c in optional if c in frame.columns]
    for record in frame[list(columns) + present].to_dict(orient="records"):
        if any(pd.isna(record[c]) or not str(record[c]).strip() for c in columns):
            continue
        yield {
            c: str(record[c]).strip()
            for c in list(columns) + present
            if not pd.isna(record[c])
        }

