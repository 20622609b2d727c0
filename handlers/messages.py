from aiogram import Dispatcher
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from dialogs import DialogBot, DialogSession
from utils.error_handler import ErrorHandler
from utils.logger import setup_logger

logger = setup_logger(__name__)


def register_message_handlers(dp: Dispatcher):

    dp.message.register(message_handler)


async def message_handler(message: Message, state: FSMContext, dialog_bot: DialogBot):
    """
    Каждое сообщение (в том числе без текста) становится ходом хоста диалогов.
    """
    session = await DialogSession.create(message, dialog_bot, state=state)

    try:
        await dialog_bot.dispatch(session)
    except Exception as e:
        await ErrorHandler.handle_turn_error(message, e, session.conversation_id)
