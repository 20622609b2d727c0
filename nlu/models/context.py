"""Conversation context model."""

from typing import Any, Dict

from config.constants import DIALOG_ID_KEY, MODIFIED_KEY


class ConversationContext(dict):
    """
    Контекст одного диалога: произвольные ключи и значения.

    Зарезервированные ключи:
        DIALOG_ID_KEY - последний диалог разработчика в стеке
        MODIFIED_KEY - временный маркер изменения, никогда не сохраняется
    """

    @property
    def dialog_id(self) -> str:
        return self.get(DIALOG_ID_KEY, "")

    @dialog_id.setter
    def dialog_id(self, value: str):
        self[DIALOG_ID_KEY] = value

    def copy(self) -> "ConversationContext":
        return ConversationContext(self)

    def to_storage(self) -> Dict[str, Any]:
        """Данные для хранилища, без временных ключей."""
        data = dict(self)
        data.pop(MODIFIED_KEY, None)
        return data
