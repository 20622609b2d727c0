from aiogram.types import Message, TelegramObject
from typing import Callable, Awaitable, Dict, Any
from aiogram.dispatcher.middlewares.base import BaseMiddleware
from collections import defaultdict
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

class Middleware(BaseMiddleware):
    """Ограничение частоты ходов и журнал входящих сообщений по беседам."""

    def __init__(self, config):
        self.config = config
        self.chat_requests: Dict[int, list] = defaultdict(list)

    async def __call__(self, handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]], event: TelegramObject, data: Dict[str, Any]) -> Any:

        chat_id = self._get_chat_id(event)

        if chat_id is None:
            return await handler(event, data)

        if not self._check_rate_limit(chat_id):
            logger.warning(f"Беседа {chat_id} превысила лимит запросов. Ход пропущен.")
            await self._send_rate_limit_message(event)
            return None
        self._log_request(event, chat_id)

        return await handler(event, data)

    def _get_chat_id(self, event: TelegramObject) -> int | None:
        chat = getattr(event, 'chat', None)
        return chat.id if chat is not None else None

    def _log_request(self, event: TelegramObject, chat_id: int):
        if isinstance(event, Message):
            if event.text:
                logger.info(f"Chat {chat_id} sent a message: {event.text}")
            else:
                logger.info(f"Chat {chat_id} sent a message without text ({event.content_type})")
        else:
            logger.info(f"Chat {chat_id} triggered an event: {event.__class__.__name__}")

    def _check_rate_limit(self, chat_id: int) -> bool:
        now = datetime.now()

        requests = self.chat_requests[chat_id]
        requests[:] = [req_time for req_time in requests
                       if now - req_time < timedelta(hours=1)]

        if len(requests) >= self.config.MAX_REQUESTS_PER_HOUR:
            return False

        minute_requests = [req_time for req_time in requests
                           if now - req_time < timedelta(minutes=1)]

        if len(minute_requests) >= self.config.MAX_REQUESTS_PER_MINUTE:
            return False

        requests.append(now)
        return True

    async def _send_rate_limit_message(self, event: TelegramObject):
        """Send a message to the chat indicating it has exceeded the rate limit."""
        if isinstance(event, Message):
            await event.answer("⚠️ Превышен лимит запросов. Попробуйте позже.")
