import asyncio

import pytest

from config.constants import DIALOG_ID_KEY, MODIFIED_KEY, NONE_INTENT
from nlu import (
    MemoryConversationContext,
    RecognitionOutcome,
    RecognitionUnavailableError,
    Recognizer,
)
from utils.metrics import metrics


def test_turn_without_text_returns_neutral_result(make_engine, make_store, make_turn) -> None:
    engine, store = make_engine(), make_store()
    recognizer = Recognizer(engine, store)
    received = []

    recognition = asyncio.run(
        recognizer.recognize(make_turn(text=None), lambda err, res: received.append((err, res)))
    )

    assert recognition.outcome == RecognitionOutcome.NO_TEXT
    assert recognition.result.score == 0.0
    assert recognition.result.intent == NONE_INTENT
    assert received == [(None, recognition.result)]
    assert engine.calls == []
    assert store.gets == 0 and store.sets == []


def test_accepted_turn_persists_context_without_marker(make_engine, make_store, make_turn, make_result) -> None:
    store = make_store()
    recognizer = Recognizer(make_engine(make_result(score=0.9)), store, threshold=0.7)
    turn = make_turn(stack=["lib:internal", "*:main"])

    recognition = asyncio.run(recognizer.recognize(turn))

    assert recognition.outcome == RecognitionOutcome.DELIVERED
    assert recognition.result.answer == "Hi there!"
    assert store.sets == [{DIALOG_ID_KEY: "main", "name": "Ann"}]
    assert MODIFIED_KEY not in recognition.context
    saved = asyncio.run(store.get_conversation_context(turn))
    assert saved["name"] == "Ann"
    assert MODIFIED_KEY not in saved


def test_rejected_turn_skips_persistence(make_engine, make_store, make_turn, make_result) -> None:
    store = make_store()
    recognizer = Recognizer(make_engine(make_result(score=0.4)), store, threshold=0.7)

    recognition = asyncio.run(recognizer.recognize(make_turn()))

    assert recognition.result.answer is None
    assert recognition.outcome == RecognitionOutcome.DELIVERED
    assert store.gets == 1
    assert store.sets == []


def test_engine_sees_loaded_context_with_dialog_id(make_engine, make_store, make_turn, make_result) -> None:
    store = make_store()
    turn = make_turn(stack=["*:booking"])
    asyncio.run(MemoryConversationContext.set_conversation_context(store, turn, {"city": "Oslo"}))
    engine = make_engine(make_result())

    asyncio.run(Recognizer(engine, store).recognize(turn))

    assert engine.calls[0]["context"] == {"city": "Oslo", DIALOG_ID_KEY: "booking"}
    assert engine.calls[0]["locale"] == "en"


def test_load_failure_matches_empty_context_run(make_engine, make_store, make_turn, make_result) -> None:
    failing = make_store(fail_get=True)
    engine = make_engine(make_result())
    recognition = asyncio.run(Recognizer(engine, failing).recognize(make_turn(stack=["*:main"])))

    baseline = asyncio.run(Recognizer(make_engine(make_result()), make_store()).recognize_utterance("hello", "en"))

    assert recognition.outcome == RecognitionOutcome.CONTEXT_UNAVAILABLE
    assert recognition.result == baseline
    assert engine.calls[0]["context"] == {}
    assert failing.sets == []
    assert metrics.recognition_counts["context_unavailable"] == 1


def test_save_failure_still_delivers_result(make_engine, make_store, make_turn, make_result) -> None:
    store = make_store(fail_set=True)
    recognizer = Recognizer(make_engine(make_result()), store)
    received = []

    recognition = asyncio.run(recognizer.recognize(make_turn(), lambda err, res: received.append((err, res))))

    assert recognition.outcome == RecognitionOutcome.CONTEXT_NOT_PERSISTED
    assert recognition.error is not None
    assert received == [(None, recognition.result)]
    assert recognition.result.answer == "Hi there!"
    assert metrics.recognition_counts["context_not_persisted"] == 1


def test_engine_failure_raises_recognition_unavailable(make_engine, make_store, make_turn) -> None:
    recognizer = Recognizer(make_engine(error=ConnectionError("ollama down")), make_store())

    with pytest.raises(RecognitionUnavailableError) as excinfo:
        asyncio.run(recognizer.recognize(make_turn()))

    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_engine_failure_is_handed_to_callback(make_engine, make_store, make_turn) -> None:
    recognizer = Recognizer(make_engine(error=ConnectionError("ollama down")), make_store())
    received = []

    recognition = asyncio.run(recognizer.recognize(make_turn(), lambda err, res: received.append((err, res))))

    assert recognition is None
    assert len(received) == 1
    error, result = received[0]
    assert isinstance(error, RecognitionUnavailableError)
    assert result is None


@pytest.mark.parametrize(
    "stack, expected",
    [
        (None, ""),
        ([], ""),
        (["lib:internal", "*:main"], "main"),
        (["*:first", "*:second"], "first"),
        (["lib:a", "lib:b"], ""),
    ],
)
def test_get_dialog_id(make_turn, stack, expected) -> None:
    assert Recognizer.get_dialog_id(make_turn(stack=stack)) == expected


def test_get_dialog_id_without_stack_accessor() -> None:
    assert Recognizer.get_dialog_id(object()) == ""


def test_engine_is_required(make_store) -> None:
    with pytest.raises(ValueError):
        Recognizer(None, make_store())


def test_load_excel_trains_and_saves(make_engine, make_store) -> None:
    engine = make_engine()
    recognizer = Recognizer(engine, make_store())

    recognizer.load_excel("corpus.xlsx", model_path="model/corpus.json")

    assert engine.excel == ["corpus.xlsx"]
    assert engine.trained == 1
    assert engine.saved == ["model/corpus.json"]


def test_context_accumulates_across_turns(make_engine, make_store, make_turn, make_result) -> None:
    from nlu import Entity

    store = make_store()
    engine = make_engine(make_result(entities=[Entity(entity="name", option="Ann")]))
    recognizer = Recognizer(engine, store)
    turn = make_turn()

    asyncio.run(recognizer.recognize(turn))
    engine.result = make_result(entities=[Entity(entity="city", option="Oslo")])
    asyncio.run(recognizer.recognize(turn))

    saved = asyncio.run(store.get_conversation_context(turn))
    assert saved["name"] == "Ann"
    assert saved["city"] == "Oslo"
