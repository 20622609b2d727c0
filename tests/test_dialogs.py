import asyncio

import pytest
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.fsm.storage.memory import MemoryStorage

from config.constants import FALLBACK_MESSAGE
from dialogs import (
    DialogBot,
    DialogNotFoundError,
    DialogSession,
    RouteResult,
    RouteType,
    best_route_result,
)
from nlu import Recognizer


def _route(score, library="*", route_type=RouteType.GLOBAL_ACTION, dialog_id="*:help"):
    return RouteResult(score=score, library_name=library, route_type=route_type, route_data={"dialog_id": dialog_id})


def test_best_route_is_none_without_positive_routes() -> None:
    assert best_route_result([], ["*:/"], "*") is None
    assert best_route_result([_route(0.0)], ["*:/"], "*") is None


def test_active_dialog_beats_global_action_on_tie() -> None:
    global_route = _route(0.5)
    active_route = _route(0.5, route_type=RouteType.ACTIVE_DIALOG, dialog_id="*:main")

    assert best_route_result([global_route, active_route], ["*:main"], "*") is active_route


def test_deepest_stack_library_with_a_route_gets_priority() -> None:
    root_route = _route(0.6, library="*")
    help_route = _route(0.6, library="help", dialog_id="help:menu")

    best = best_route_result([root_route, help_route], ["*:/", "help:menu"], "*")

    assert best is help_route


def test_session_exposes_turn_fields(make_message) -> None:
    session = DialogSession(make_message(text="hi", chat_id=99, language_code="es"), DialogBot())

    assert session.text == "hi"
    assert session.locale == "es"
    assert session.conversation_id == "99"
    assert session.dialog_stack() == []


def test_route_to_active_dialog_starts_root_when_stack_is_empty(make_message) -> None:
    message = make_message()
    session = DialogSession(message, DialogBot())

    asyncio.run(session.route_to_active_dialog())

    assert message.sent == [FALLBACK_MESSAGE]
    assert session.dialog_stack() == ["*:/"]


def test_begin_dialog_pushes_bot_library_id(make_message) -> None:
    calls = []

    async def help_dialog(session):
        calls.append(session.active_dialog())

    bot = DialogBot().dialog("Help", help_dialog)
    session = DialogSession(make_message(), bot, dialog_stack=["*:/"])

    asyncio.run(session.begin_dialog("Help"))

    assert calls == ["*:Help"]
    assert session.dialog_stack() == ["*:/", "*:Help"]


def test_unknown_dialog_raises(make_message) -> None:
    session = DialogSession(make_message(), DialogBot())

    with pytest.raises(DialogNotFoundError):
        asyncio.run(session.begin_dialog("missing"))


def test_dispatch_uses_trigger_intent_route(make_engine, make_store, make_message, make_result) -> None:
    started = []

    async def greeting(session):
        started.append(session.conversation_id)
        await session.send("greeting dialog")

    bot = DialogBot().dialog("greeting", greeting, trigger_intent="greet")
    bot.recognizer(Recognizer(make_engine(make_result(score=0.9)), make_store()))
    message = make_message(text="hello")

    asyncio.run(bot.dispatch(DialogSession(message, bot)))

    assert started == ["42"]
    assert message.sent == ["greeting dialog"]


def test_dispatch_without_routes_goes_to_root(make_message) -> None:
    message = make_message(text=None)
    bot = DialogBot()

    asyncio.run(bot.dispatch(DialogSession(message, bot)))

    assert message.sent == [FALLBACK_MESSAGE]


def test_dispatch_continues_active_dialog(make_message) -> None:
    turns = []

    async def survey(session):
        turns.append(session.text)

    bot = DialogBot().dialog("survey", survey)
    session = DialogSession(make_message(text="blue"), bot, dialog_stack=["*:/", "*:survey"])

    asyncio.run(bot.dispatch(session))

    assert turns == ["blue"]


def test_dialog_stack_survives_between_turns_in_fsm(make_message) -> None:
    async def noop(session):
        return None

    bot = DialogBot().dialog("survey", noop)
    state = FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=42, user_id=7))

    async def scenario():
        first = await DialogSession.create(make_message(), bot, state=state)
        await first.begin_dialog("survey")
        await first.save()
        second = await DialogSession.create(make_message(), bot, state=state)
        return second.dialog_stack()

    assert asyncio.run(scenario()) == ["*:survey"]


def test_end_dialog_returns_to_parent(make_message) -> None:
    session = DialogSession(make_message(), DialogBot(), dialog_stack=["*:/", "*:survey"])

    asyncio.run(session.end_dialog())

    assert session.active_dialog() == "*:/"


def test_unknown_dialog_leaves_saved_stack_unchanged(make_message) -> None:
    turns = []

    async def survey(session):
        turns.append(session.text)

    bot = DialogBot().dialog("survey", survey)
    state = FSMContext(storage=MemoryStorage(), key=StorageKey(bot_id=1, chat_id=42, user_id=7))

    async def scenario():
        await state.update_data({"dialog_stack": ["*:survey"]})
        session = await DialogSession.create(make_message(text="go"), bot, state=state)
        with pytest.raises(DialogNotFoundError):
            await session.begin_dialog("Missing")
        await session.save()
        stored = (await state.get_data())["dialog_stack"]
        await bot.dispatch(await DialogSession.create(make_message(text="next"), bot, state=state))
        return stored

    assert asyncio.run(scenario()) == ["*:survey"]
    assert turns == ["next"]


def test_best_route_uses_session_stack(make_message) -> None:
    bot = DialogBot()
    root_route = _route(0.6, library="*")
    help_route = _route(0.6, library="help", dialog_id="help:menu")
    session = DialogSession(make_message(), bot, dialog_stack=["*:/", "help:menu"])

    assert bot.best_route(session, [root_route, help_route]) is help_route
