"""
LLM-based Recognition Engine.

Классификация намерений через локальную LLM (Ollama) по обучающему
корпусу, извлечение перечислимых сущностей по синонимам корпуса.
"""

import json
import logging
import math
import random
import re
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Tuple

from config.constants import DEFAULT_THRESHOLD, NONE_INTENT, DIALOG_ID_KEY, MODIFIED_KEY
from nlu.classifiers.corpus import Corpus
from nlu.engine import RecognitionEngine
from nlu.errors import CorpusError, EngineNotTrainedError
from nlu.models import ConversationContext, Entity, RecognitionResult
from services.llm.client import ChatMessage, LLMClient
from utils.logger import setup_logger

logger = setup_logger(name="llm_engine", level=logging.INFO)

_WORD_PATTERN = re.compile(r"\w+", re.UNICODE)

INTENT_CLASSIFICATION_PROMPT = """You are an intent classifier for a chatbot (locale: {locale}).

Classify the user message into exactly one of these intents:
{intents}
- {none_intent}: the message matches none of the intents above

{context}

Answer ONLY with JSON:
{{"intent": "intent_name", "score": 0.0-1.0, "alternatives": [["intent_name", 0.0-1.0]]}}"""


class LLMRecognitionEngine(RecognitionEngine):
    """
    Движок распознавания на базе LLM.

    Обучение сводится к построению промптов классификации для каждой
    локали корпуса; сущности извлекаются без LLM, нечётким сравнением
    n-грамм высказывания с синонимами корпуса.
    """

    def __init__(
        self,
        client: LLMClient,
        corpus: Optional[Corpus] = None,
        ner_threshold: float = DEFAULT_THRESHOLD,
        temperature: float = 0.1,
        examples_per_intent: int = 5,
    ):
        self.client = client
        self.corpus = corpus
        self.ner_threshold = ner_threshold
        self.temperature = temperature
        self.examples_per_intent = examples_per_intent
        self._prompts: Dict[str, str] = {}

    @property
    def is_trained(self) -> bool:
        return bool(self._prompts)

    def train(self):
        """Построить промпты классификации по корпусу."""
        if self.corpus is None:
            raise CorpusError("No corpus to train on")
        self.corpus.validate()

        prompts = {}
        for locale in self.corpus.locales:
            lines = []
            for definition in self.corpus.intents.values():
                examples = definition.utterances.get(locale, [])[: self.examples_per_intent]
                if not examples:
                    continue
                quoted = "; ".join(f'"{e}"' for e in examples)
                lines.append(f"- {definition.name}: {quoted}")
            if lines:
                prompts[locale] = "\n".join(lines)
        self._prompts = prompts
        logger.info(f"Движок обучен: {len(self.corpus.intents)} намерений, локали {list(prompts)}")

    def load(self, filename: str):
        self.corpus = Corpus.load(filename)
        self.train()

    def save(self, filename: str):
        if self.corpus is None:
            raise CorpusError("No corpus to save")
        self.corpus.save(filename)

    def load_excel(self, filename: str):
        self.corpus = Corpus.from_excel(filename)

    def resolve_locale(self, locale: Optional[str]) -> str:
        """
        Выбрать локаль корпуса: точное совпадение, затем язык ("en-US" -> "en"),
        иначе локаль по умолчанию.
        """
        if locale:
            if locale in self._prompts:
                return locale
            language = re.split(r"[-_]", locale)[0].lower()
            if language in self._prompts:
                return language
        return self.corpus.default_locale if self.corpus.default_locale in self._prompts else next(iter(self._prompts))

    async def process(
        self,
        utterance: str,
        context: ConversationContext,
        locale: Optional[str] = None,
    ) -> RecognitionResult:
        if not self.is_trained:
            raise EngineNotTrainedError("Engine must be trained before processing")

        locale = self.resolve_locale(locale)
        entities = self.extract_entities(utterance)

        messages = [
            ChatMessage(role="system", content=self._build_prompt(locale, context)),
            ChatMessage(role="user", content=utterance),
        ]
        response = await self.client.chat(
            messages, temperature=self.temperature, max_tokens=200, json_mode=True
        )
        intent, score, alternatives = self._parse_response(response.content)

        answer = None
        if intent != NONE_INTENT:
            answers = self.corpus.answers_for(intent, locale)
            if answers:
                answer = random.choice(answers)

        logger.debug(f"'{utterance}' -> {intent} ({score:.2f}), entities={[e.entity for e in entities]}")
        return RecognitionResult(
            utterance=utterance,
            locale=locale,
            score=score,
            intent=intent,
            entities=entities,
            answer=answer,
            classifications=alternatives,
        )

    def _build_prompt(self, locale: str, context: ConversationContext) -> str:
        context_lines = []
        if context:
            dialog_id = context.get(DIALOG_ID_KEY)
            if dialog_id:
                context_lines.append(f"Current dialog: {dialog_id}")
            known = [
                f"{key}={value}" for key, value in context.items()
                if key not in (DIALOG_ID_KEY, MODIFIED_KEY)
            ]
            if known:
                context_lines.append(f"Known values: {', '.join(known[:10])}")
        context_str = "Conversation context:\n" + "\n".join(context_lines) if context_lines else ""

        return INTENT_CLASSIFICATION_PROMPT.format(
            locale=locale,
            intents=self._prompts[locale],
            none_intent=NONE_INTENT,
            context=context_str,
        )

    def _parse_response(self, response: str) -> Tuple[str, float, List[Tuple[str, float]]]:
        """Парсинг ответа от LLM; неизвестные намерения -> NONE_INTENT."""
        data = None
        try:
            data = json.loads(response)
        except json.JSONDecodeError:
            json_match = re.search(r'\{.*\}', response, re.DOTALL)
            if json_match:
                try:
                    data = json.loads(json_match.group())
                except json.JSONDecodeError:
                    data = None
        if not isinstance(data, dict):
            logger.warning(f"Не удалось разобрать ответ LLM: {response[:200]}")
            return NONE_INTENT, 0.0, []

        intent = str(data.get("intent", NONE_INTENT))
        score = _clamp(data.get("score", 0.0))
        if intent != NONE_INTENT and intent not in self.corpus.intents:
            logger.warning(f"LLM вернула неизвестное намерение '{intent}'")
            intent, score = NONE_INTENT, 0.0

        alternatives = []
        for item in data.get("alternatives") or []:
            if isinstance(item, (list, tuple)) and len(item) == 2 and item[0] in self.corpus.intents:
                alternatives.append((item[0], _clamp(item[1])))
        return intent, score, alternatives

    def extract_entities(self, utterance: str) -> List[Entity]:
        """Найти перечислимые сущности корпуса в высказывании (в порядке появления)."""
        words = list(_WORD_PATTERN.finditer(utterance))
        found = []
        for definition in self.corpus.entities.values():
            for option, synonyms in definition.options.items():
                for synonym in synonyms:
                    size = len(_WORD_PATTERN.findall(synonym))
                    if not size:
                        continue
                    for start in range(len(words) - size + 1):
                        first, last = words[start], words[start + size - 1]
                        source = utterance[first.start():last.end()]
                        accuracy = SequenceMatcher(None, source.lower(), synonym.lower()).ratio()
                        if accuracy >= self.ner_threshold:
                            found.append((first.start(), -accuracy, definition.name, option, source))

        # Лучшее совпадение на позицию для каждой сущности
        found.sort()
        entities = []
        seen = set()
        for position, negative_accuracy, name, option, source in found:
            if (name, position) in seen:
                continue
            seen.add((name, position))
            entities.append(Entity(entity=name, option=option, source_text=source, accuracy=-negative_accuracy))
        return entities


def _clamp(value) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))
