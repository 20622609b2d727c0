import asyncio

import pytest

from config.constants import NONE_INTENT
from nlu import ConversationContext, Entity, UtteranceProcessor


def test_accepted_result_merges_entities_into_copy(make_engine, make_result) -> None:
    engine = make_engine(make_result(score=0.9))
    processor = UtteranceProcessor(engine, threshold=0.7)
    original = ConversationContext({"city": "Paris"})

    processed = asyncio.run(processor.process(original, "en", "hello, I am Ann"))

    assert processed.result.answer == "Hi there!"
    assert processed.context["name"] == "Ann"
    assert processed.context["city"] == "Paris"
    assert processed.modified is True
    assert "name" not in original


def test_low_score_clears_answer_and_leaves_context(make_engine, make_result) -> None:
    engine = make_engine(make_result(score=0.4))
    processor = UtteranceProcessor(engine, threshold=0.7)

    processed = asyncio.run(processor.process(ConversationContext({"city": "Paris"}), "en", "hm"))

    assert processed.result.answer is None
    assert processed.context == {"city": "Paris"}
    assert processed.modified is False


def test_none_intent_is_rejected_even_with_high_score(make_engine, make_result) -> None:
    result = make_result(score=0.99)
    result.intent = NONE_INTENT
    processor = UtteranceProcessor(make_engine(result), threshold=0.7)

    processed = asyncio.run(processor.process(ConversationContext(), "en", "blah"))

    assert processed.result.answer is None
    assert "name" not in processed.context
    assert processed.modified is False


def test_score_equal_to_threshold_is_accepted(make_engine, make_result) -> None:
    processor = UtteranceProcessor(make_engine(make_result(score=0.7)), threshold=0.7)

    processed = asyncio.run(processor.process(ConversationContext(), "en", "hello"))

    assert processed.result.answer == "Hi there!"
    assert processed.context["name"] == "Ann"


def test_last_entity_wins_for_duplicate_names(make_engine, make_result) -> None:
    entities = [
        Entity(entity="name", option="Ann"),
        Entity(entity="city", option="Oslo"),
        Entity(entity="name", option="Bob"),
    ]
    processor = UtteranceProcessor(make_engine(make_result(entities=entities)), threshold=0.7)

    processed = asyncio.run(processor.process(ConversationContext(), "en", "Ann and Bob from Oslo"))

    assert processed.context["name"] == "Bob"
    assert processed.context["city"] == "Oslo"


def test_accepted_without_entities_is_not_modified(make_engine, make_result) -> None:
    processor = UtteranceProcessor(make_engine(make_result(entities=[])), threshold=0.7)

    processed = asyncio.run(processor.process(ConversationContext(), "en", "hello"))

    assert processed.result.answer == "Hi there!"
    assert processed.modified is False


def test_locale_is_only_passed_when_given(make_engine, make_result) -> None:
    engine = make_engine(make_result())
    processor = UtteranceProcessor(engine)

    asyncio.run(processor.process(ConversationContext(), "es", "hola"))
    asyncio.run(processor.process(ConversationContext(), None, "hello"))

    assert engine.calls[0]["locale"] == "es"
    assert engine.calls[1]["locale"] is None


def test_none_context_is_treated_as_empty(make_engine, make_result) -> None:
    processor = UtteranceProcessor(make_engine(make_result()))

    processed = asyncio.run(processor.process(None, "en", "hello"))

    assert processed.context == {"name": "Ann"}


def test_engine_errors_propagate_unchanged(make_engine) -> None:
    processor = UtteranceProcessor(make_engine(error=RuntimeError("model crashed")))

    with pytest.raises(RuntimeError, match="model crashed"):
        asyncio.run(processor.process(ConversationContext(), "en", "hello"))
