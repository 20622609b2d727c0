import asyncio

from dialogs import DialogBot
from handlers.messages import message_handler
from utils.error_handler import ERROR_MESSAGES, ErrorHandler
from dialogs.bot import DialogNotFoundError
from nlu import RecognitionUnavailableError


def test_error_text_by_kind() -> None:
    assert ErrorHandler.error_text(DialogNotFoundError("*:x")) == ERROR_MESSAGES['dialog_not_found']
    assert ErrorHandler.error_text(RecognitionUnavailableError("down")) == ERROR_MESSAGES['recognition_failed']
    assert ErrorHandler.error_text(RuntimeError("boom")) == ERROR_MESSAGES['turn_failed']


def test_handler_reports_failed_turn(make_message) -> None:
    async def broken(session):
        raise RuntimeError("boom")

    bot = DialogBot(root_dialog=broken)
    message = make_message(text=None)

    asyncio.run(message_handler(message, None, bot))

    assert message.sent == [ERROR_MESSAGES['turn_failed']]
