"""
Routing Decider - замена выбора маршрута хоста на решение рекогнайзера.

Порядок для хода:
    1. on_begin_routing
    2. есть текст: распознать; уверенный ответ -> on_recognized_routing,
       затем ответ ("/Имя" запускает диалог, иначе отправляется текстом);
       иначе on_unrecognized_routing, затем маршрут по умолчанию
    3. нет текста: on_no_text_routing, затем маршрут по умолчанию
Хук, вернувший ABORT или ничего не вернувший (None), прекращает обработку
хода без ошибки.
"""

import inspect
import logging
from typing import Any, Callable, List, Optional

from config.constants import DEFAULT_THRESHOLD
from nlu.errors import RecognitionUnavailableError
from nlu.models import RecognitionResult, RoutingAction, RoutingDecision, RoutingHooks
from nlu.recognizer import Recognizer, get_utterance
from utils.logger import setup_logger
from utils.metrics import metrics

logger = setup_logger(name="routing", level=logging.INFO)


async def _should_continue(hook: Optional[Callable], *args) -> bool:
    if hook is None:
        return True
    decision = hook(*args)
    if inspect.isawaitable(decision):
        decision = await decision
    if decision is None:
        logger.warning(f"Хук роутинга {hook!r} ничего не вернул, ход прерван")
        return False
    if not isinstance(decision, RoutingDecision):
        raise TypeError(f"Routing hook {hook!r} must return RoutingDecision, got {decision!r}")
    return decision == RoutingDecision.CONTINUE


class RoutingDecider:
    """Установка рекогнайзера в хост и решение о маршруте хода."""

    def __init__(self, recognizer: Recognizer, hooks: Optional[RoutingHooks] = None):
        self.recognizer = recognizer
        self.hooks = hooks or RoutingHooks()
        self.routing_threshold = DEFAULT_THRESHOLD
        self.bot = None

    def set_routing(self, bot: Any, activate: bool = False, routing_threshold: float = DEFAULT_THRESHOLD):
        """
        Зарегистрировать рекогнайзер в хосте и, при activate, заменить
        выбор маршрута хоста на disambiguate.

        Args:
            bot: Хост диалогов (recognizer(), on_disambiguate_route, best_route, select_route)
            activate: Заменять ли выбор маршрута
            routing_threshold: Порог score для ответа рекогнайзера (строго больше)
        """
        bot.recognizer(self.recognizer)
        if not activate:
            return
        self.bot = bot
        self.routing_threshold = routing_threshold
        bot.on_disambiguate_route = self.disambiguate
        logger.info(f"Роутинг рекогнайзера активирован, порог {routing_threshold}")

    async def disambiguate(self, session: Any, routes: List[Any]) -> RoutingAction:
        action = await self._decide(session, routes)
        metrics.record_routing(action.value, getattr(session, "conversation_id", None))
        return action

    async def _decide(self, session: Any, routes: List[Any]) -> RoutingAction:
        hooks = self.hooks
        if not await _should_continue(hooks.on_begin_routing, session):
            return RoutingAction.ABORTED

        if not get_utterance(session):
            if not await _should_continue(hooks.on_no_text_routing, session):
                return RoutingAction.ABORTED
            return await self.default_routing(self.bot, session, routes)

        result = await self._recognize(session)

        if result.score > self.routing_threshold and result.answer:
            if not await _should_continue(hooks.on_recognized_routing, session, result):
                return RoutingAction.ABORTED
            return await self.process_answer(session, result.answer)

        if not await _should_continue(hooks.on_unrecognized_routing, session, result):
            return RoutingAction.ABORTED
        return await self.default_routing(self.bot, session, routes)

    async def _recognize(self, session: Any) -> RecognitionResult:
        """Распознавание хода; повторно к движку не обращается, если хост уже распознал ход."""
        recognition = getattr(session, "recognition", None)
        if recognition is not None:
            return recognition.result
        try:
            recognition = await self.recognizer.recognize(session)
        except RecognitionUnavailableError as e:
            logger.warning(f"Распознавание недоступно при роутинге, ход считается нераспознанным: {e}")
            return RecognitionResult.neutral()
        return recognition.result

    async def process_answer(self, session: Any, answer: str) -> RoutingAction:
        """Ответ "/Имя" запускает диалог "Имя", иначе отправляется текстом."""
        if answer.startswith("/"):
            await session.begin_dialog(answer[1:])
            return RoutingAction.DIALOG_STARTED
        await session.send(answer)
        return RoutingAction.ANSWER_SENT

    async def default_routing(self, bot: Any, session: Any, routes: List[Any]) -> RoutingAction:
        """Лучший маршрут хоста, иначе активный диалог."""
        route = bot.best_route(session, routes)
        if route:
            await bot.select_route(session, route)
            return RoutingAction.ROUTE_SELECTED
        await session.route_to_active_dialog()
        return RoutingAction.ACTIVE_DIALOG
