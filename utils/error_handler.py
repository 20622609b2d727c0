"""
Централизованная обработка ошибок хода диалога
"""

from aiogram.types import Message

from dialogs.bot import DialogNotFoundError
from nlu.errors import NLUError
from utils.logger import setup_logger

logger = setup_logger(name="error_handler", level="ERROR")

ERROR_MESSAGES = {
    'dialog_not_found': "❌ Этот сценарий сейчас недоступен.",
    'recognition_failed': "⚠️ Не удалось разобрать сообщение. Попробуйте переформулировать.",
    'turn_failed': "❌ Произошла ошибка при обработке сообщения. Попробуйте ещё раз.",
}


class ErrorHandler:
    """Класс для централизованной обработки ошибок"""

    @staticmethod
    def error_text(error: Exception) -> str:
        if isinstance(error, DialogNotFoundError):
            return ERROR_MESSAGES['dialog_not_found']
        if isinstance(error, NLUError):
            return ERROR_MESSAGES['recognition_failed']
        return ERROR_MESSAGES['turn_failed']

    @staticmethod
    async def handle_turn_error(message: Message, error: Exception, conversation_id=None):
        """Обработка ошибки хода: журнал и ответ пользователю"""
        logger.error(f"Turn error in conversation {conversation_id}: {error}", exc_info=error)
        await message.answer(ErrorHandler.error_text(error))
