"""Хост диалогов поверх aiogram."""

from .bot import DialogBot, DialogNotFoundError
from .routes import RouteResult, RouteType, best_route_result
from .session import DialogSession

__all__ = [
    "DialogBot",
    "DialogNotFoundError",
    "DialogSession",
    "RouteResult",
    "RouteType",
    "best_route_result",
]
