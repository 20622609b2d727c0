"""
Статичные константы приложения

Здесь должны быть только константы, которые:
- Не изменяются между окружениями (dev/prod)
- Не являются секретами
- Определяют поведение распознавания и роутинга
"""

# Намерение "ничего не распознано"
NONE_INTENT = "None"

# Порог по умолчанию для распознавания, NER и роутинга
DEFAULT_THRESHOLD = 0.7

# Зарезервированные ключи контекста диалога
DIALOG_ID_KEY = "dialogId"
MODIFIED_KEY = "$modified"  # Никогда не сохраняется в хранилище

# Префикс диалогов разработчика в стеке ("*:main" -> "main")
FRAMEWORK_DIALOG_PREFIX = "*:"

# Хост диалогов
DEFAULT_LIBRARY_NAME = "*"
ROOT_DIALOG = "/"
ACTIVE_DIALOG_SCORE = 0.1
FALLBACK_MESSAGE = "Sorry, I didn't understand that."

# Ollama (статичные данные)
DEFAULT_OLLAMA_URL = "http://ollama:11434"
LLM_TIMEOUT_SECONDS = 60
