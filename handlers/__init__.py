from aiogram import Dispatcher
from . import messages

def register_handlers(dp: Dispatcher):

    messages.register_message_handlers(dp)
