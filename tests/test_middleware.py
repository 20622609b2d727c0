import asyncio
from types import SimpleNamespace

from middlewares import Middleware


def _middleware(per_minute=2, per_hour=100) -> Middleware:
    return Middleware(SimpleNamespace(MAX_REQUESTS_PER_MINUTE=per_minute, MAX_REQUESTS_PER_HOUR=per_hour))


def test_turns_over_minute_limit_are_dropped(make_message) -> None:
    middleware = _middleware(per_minute=2)
    handled = []

    async def handler(event, data):
        handled.append(event.text)
        return "ok"

    async def scenario():
        return [await middleware(handler, make_message(text=f"m{i}"), {}) for i in range(3)]

    assert asyncio.run(scenario()) == ["ok", "ok", None]
    assert handled == ["m0", "m1"]


def test_limits_are_per_chat() -> None:
    middleware = _middleware(per_minute=1)

    assert middleware._check_rate_limit(1) is True
    assert middleware._check_rate_limit(1) is False
    assert middleware._check_rate_limit(2) is True


def test_events_without_chat_pass_through() -> None:
    middleware = _middleware(per_minute=0)

    async def handler(event, data):
        return "handled"

    assert asyncio.run(middleware(handler, SimpleNamespace(), {})) == "handled"
