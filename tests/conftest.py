import copy
from types import SimpleNamespace
from typing import List, Optional

import pytest

from nlu import (
    ContextStoreError,
    Entity,
    MemoryConversationContext,
    RecognitionEngine,
    RecognitionResult,
)
from utils.metrics import metrics


class FakeEngine(RecognitionEngine):
    """Движок с заранее заданным ответом; записывает вызовы."""

    def __init__(self, result: Optional[RecognitionResult] = None, error: Optional[Exception] = None):
        self.result = result or RecognitionResult.neutral()
        self.error = error
        self.calls = []
        self.trained = 0
        self.saved = []
        self.loaded = []
        self.excel = []

    async def process(self, utterance, context, locale=None):
        self.calls.append({"utterance": utterance, "context": dict(context), "locale": locale})
        if self.error:
            raise self.error
        return copy.deepcopy(self.result)

    def train(self):
        self.trained += 1

    def load(self, filename):
        self.loaded.append(filename)

    def save(self, filename):
        self.saved.append(filename)

    def load_excel(self, filename):
        self.excel.append(filename)


class RecordingStore(MemoryConversationContext):
    """Хранилище в памяти с журналом вызовов и управляемыми отказами."""

    def __init__(self, fail_get: bool = False, fail_set: bool = False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.gets = 0
        self.sets: List[dict] = []

    async def get_conversation_context(self, turn):
        self.gets += 1
        if self.fail_get:
            raise ContextStoreError("storage offline")
        return await super().get_conversation_context(turn)

    async def set_conversation_context(self, turn, context):
        self.sets.append(dict(context))
        if self.fail_set:
            raise ContextStoreError("disk full")
        await super().set_conversation_context(turn, context)


class FakeMessage:
    def __init__(self, text: Optional[str] = "hello", chat_id: int = 42, language_code: Optional[str] = "en"):
        self.text = text
        self.chat = SimpleNamespace(id=chat_id)
        self.from_user = SimpleNamespace(id=7, language_code=language_code)
        self.content_type = "text" if text else "sticker"
        self.sent: List[str] = []

    async def answer(self, text: str):
        self.sent.append(text)


class FakeTurn:
    def __init__(self, text: Optional[str] = "hello", locale: Optional[str] = "en",
                 conversation_id: Optional[str] = "conv-1", stack: Optional[List[str]] = None):
        self.message = SimpleNamespace(text=text) if text is not None else None
        self.locale = locale
        self.conversation_id = conversation_id
        self._stack = stack

    def dialog_stack(self):
        return list(self._stack or [])


def greet_result(score: float = 0.9, entities=None, answer: str = "Hi there!") -> RecognitionResult:
    return RecognitionResult(
        utterance="hello, I am Ann",
        locale="en",
        score=score,
        intent="greet",
        entities=entities if entities is not None else [Entity(entity="name", option="Ann")],
        answer=answer,
    )


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def make_engine():
    return FakeEngine


@pytest.fixture
def make_store():
    return RecordingStore


@pytest.fixture
def make_turn():
    return FakeTurn


@pytest.fixture
def make_message():
    return FakeMessage


@pytest.fixture
def make_result():
    return greet_result
