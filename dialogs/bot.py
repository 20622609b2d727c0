"""
Dialog Bot - хост диалогов: реестр диалогов, рекогнайзеры и выбор маршрута.

Точки подключения:
    recognizer(r) - регистрация рекогнайзера
    on_disambiguate_route - замена выбора маршрута для хода
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from config.constants import ACTIVE_DIALOG_SCORE, DEFAULT_LIBRARY_NAME, FALLBACK_MESSAGE, ROOT_DIALOG
from dialogs.routes import RouteResult, RouteType, best_route_result
from dialogs.session import DialogNotFoundError, DialogSession
from nlu.errors import RecognitionUnavailableError
from nlu.models import RecognitionResult
from utils.logger import setup_logger

logger = setup_logger(name="dialog_bot", level=logging.INFO)

DialogHandler = Callable[[DialogSession], Awaitable[None]]
DisambiguateHandler = Callable[[DialogSession, List[RouteResult]], Awaitable[Any]]


async def fallback_root_dialog(session: DialogSession):
    await session.send(FALLBACK_MESSAGE)


class DialogBot:
    """Хост диалогов поверх aiogram."""

    def __init__(self, name: str = DEFAULT_LIBRARY_NAME, root_dialog: Optional[DialogHandler] = None):
        self.name = name
        self._dialogs: Dict[str, DialogHandler] = {}
        self._triggers: Dict[str, str] = {}  # intent -> dialog id
        self._recognizers: List[Any] = []
        self.on_disambiguate_route: Optional[DisambiguateHandler] = None
        self.dialog(ROOT_DIALOG, root_dialog or fallback_root_dialog)

    def resolve_dialog_id(self, name: str) -> str:
        return name if ":" in name else f"{self.name}:{name}"

    def dialog(
        self,
        name: str,
        handler: DialogHandler,
        trigger_intent: Optional[str] = None,
        library: Optional[str] = None,
    ) -> "DialogBot":
        """
        Зарегистрировать диалог.

        Args:
            name: Имя диалога
            handler: Корутина handler(session)
            trigger_intent: Намерение, глобально запускающее диалог
            library: Библиотека диалога (по умолчанию - библиотека бота)
        """
        dialog_id = f"{library or self.name}:{name}"
        self._dialogs[dialog_id] = handler
        if trigger_intent:
            self._triggers[trigger_intent] = dialog_id
        return self

    def has_dialog(self, name: str) -> bool:
        return self.resolve_dialog_id(name) in self._dialogs

    def recognizer(self, recognizer: Any) -> "DialogBot":
        self._recognizers.append(recognizer)
        return self

    async def run_dialog(self, session: DialogSession, dialog_id: str):
        handler = self._dialogs.get(dialog_id)
        if handler is None:
            raise DialogNotFoundError(dialog_id)
        await handler(session)

    async def recognize(self, session: DialogSession) -> Optional[RecognitionResult]:
        """
        Лучший результат среди зарегистрированных рекогнайзеров.

        Распознавание сохраняется в session.recognition, чтобы выбор
        маршрута в том же ходе не обращался к движку повторно.
        """
        best = None
        for recognizer in self._recognizers:
            try:
                recognition = await recognizer.recognize(session)
            except RecognitionUnavailableError as e:
                logger.warning(f"Рекогнайзер недоступен: {e}")
                continue
            if recognition is None:
                continue
            if best is None or recognition.result.score > best.result.score:
                best = recognition
        session.recognition = best
        return best.result if best is not None else None

    async def find_routes(self, session: DialogSession) -> List[RouteResult]:
        """Кандидаты маршрута; остаются только маршруты с наибольшим score."""
        routes = []
        if session.text:
            result = await self.recognize(session)
            if result is not None and not result.is_none():
                dialog_id = self._triggers.get(result.intent)
                if dialog_id:
                    routes.append(RouteResult(
                        score=result.score,
                        library_name=dialog_id.split(":", 1)[0],
                        route_type=RouteType.GLOBAL_ACTION,
                        route_data={"dialog_id": dialog_id, "intent": result.intent},
                    ))

        active = session.active_dialog()
        if active:
            routes.append(RouteResult(
                score=ACTIVE_DIALOG_SCORE,
                library_name=active.split(":", 1)[0],
                route_type=RouteType.ACTIVE_DIALOG,
                route_data={"dialog_id": active},
            ))

        if not routes:
            return []
        top_score = max(route.score for route in routes)
        return [route for route in routes if route.score == top_score]

    async def select_route(self, session: DialogSession, route: RouteResult):
        if route.route_type == RouteType.GLOBAL_ACTION:
            await session.begin_dialog(route.route_data["dialog_id"])
        else:
            await session.route_to_active_dialog()

    def best_route(self, session: DialogSession, routes: List[RouteResult]) -> Optional[RouteResult]:
        """Лучший маршрут хода с учётом стека диалогов сессии."""
        return best_route_result(routes, session.dialog_stack(), self.name)

    async def default_disambiguate(self, session: DialogSession, routes: List[RouteResult]):
        route = self.best_route(session, routes)
        if route:
            await self.select_route(session, route)
        else:
            await session.route_to_active_dialog()

    async def dispatch(self, session: DialogSession):
        """Обработать ход: найти маршруты и передать выбор обработчику."""
        routes = await self.find_routes(session)
        handler = self.on_disambiguate_route or self.default_disambiguate
        try:
            await handler(session, routes)
        finally:
            await session.save()
