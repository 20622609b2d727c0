"""
Dialog Session - ход диалога поверх сообщения aiogram.

Стек диалогов хранится в данных FSM под ключом DIALOG_STACK_KEY.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from config.constants import ROOT_DIALOG
from utils.logger import setup_logger

if TYPE_CHECKING:
    from dialogs.bot import DialogBot
    from nlu.models import TurnRecognition

logger = setup_logger(name="dialog_session", level=logging.INFO)

DIALOG_STACK_KEY = "dialog_stack"


class DialogNotFoundError(KeyError):
    """Диалог не зарегистрирован."""


class DialogSession:
    """
    Ход диалога: сообщение, локаль, идентификатор беседы и стек диалогов.

    Элементы стека имеют вид "библиотека:диалог", диалоги бота - "*:имя".
    """

    def __init__(
        self,
        message: Message,
        bot: "DialogBot",
        state: Optional[FSMContext] = None,
        dialog_stack: Optional[List[str]] = None,
    ):
        self.message = message
        self.bot = bot
        self.state = state
        self._stack: List[str] = list(dialog_stack or [])
        # Распознавание хода, выполненное хостом при сборе маршрутов
        self.recognition: Optional["TurnRecognition"] = None

    @classmethod
    async def create(cls, message: Message, bot: "DialogBot", state: Optional[FSMContext] = None) -> "DialogSession":
        """Создать сессию, подняв стек диалогов из FSM."""
        stack = []
        if state is not None:
            data = await state.get_data()
            stack = list(data.get(DIALOG_STACK_KEY, []))
        return cls(message, bot, state=state, dialog_stack=stack)

    @property
    def text(self) -> Optional[str]:
        return getattr(self.message, "text", None) or None

    @property
    def locale(self) -> Optional[str]:
        user = getattr(self.message, "from_user", None)
        return getattr(user, "language_code", None) if user else None

    @property
    def conversation_id(self) -> Optional[str]:
        chat = getattr(self.message, "chat", None)
        return str(chat.id) if chat is not None else None

    def dialog_stack(self) -> List[str]:
        return list(self._stack)

    def active_dialog(self) -> Optional[str]:
        return self._stack[-1] if self._stack else None

    async def begin_dialog(self, name: str):
        """
        Положить диалог на стек и запустить его.

        Незарегистрированный диалог на стек не попадает.
        """
        dialog_id = self.bot.resolve_dialog_id(name)
        if not self.bot.has_dialog(dialog_id):
            raise DialogNotFoundError(dialog_id)
        self._stack.append(dialog_id)
        logger.debug(f"Беседа {self.conversation_id}: начат диалог {dialog_id}")
        await self.bot.run_dialog(self, dialog_id)

    async def end_dialog(self):
        """Снять активный диалог со стека."""
        if self._stack:
            dialog_id = self._stack.pop()
            logger.debug(f"Беседа {self.conversation_id}: завершён диалог {dialog_id}")

    async def route_to_active_dialog(self):
        """Передать ход активному диалогу; без активного - корневому."""
        active = self.active_dialog()
        if active is None:
            await self.begin_dialog(ROOT_DIALOG)
            return
        await self.bot.run_dialog(self, active)

    async def send(self, text: str):
        await self.message.answer(text)

    async def save(self):
        """Сохранить стек диалогов в FSM."""
        if self.state is not None:
            await self.state.update_data({DIALOG_STACK_KEY: self._stack})
