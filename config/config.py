from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_OLLAMA_URL, DEFAULT_THRESHOLD


@dataclass
class Config:
    """Конфигурация приложения из переменных окружения"""
    # Секреты
    BOT_TOKEN: Optional[str]

    # Настройки логирования
    LOG_LEVEL: str
    LOG_FILE: str

    # Движок распознавания
    OLLAMA_URL: str
    OLLAMA_MODEL: Optional[str]
    MODEL_PATH: str

    # Пороги распознавания и роутинга
    RECOGNIZER_THRESHOLD: float
    NER_THRESHOLD: float
    ROUTING_ACTIVE: bool
    ROUTING_THRESHOLD: float

    # Хранилище контекста
    CONTEXT_STORE: str
    DB_PATH: str
    CACHE_TTL_MINUTES: int
    MAX_CACHE_SIZE: int

    # Лимиты запросов
    MAX_REQUESTS_PER_HOUR: int
    MAX_REQUESTS_PER_MINUTE: int


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(require_token: bool = True) -> Config:
    """
    Загрузка конфигурации из переменных окружения

    Args:
        require_token: Требовать ли BOT_TOKEN (не нужен для офлайн-обучения модели)

    Returns:
        Config: Объект конфигурации

    Raises:
        ValueError: Если не найдена обязательная переменная или хранилище неизвестно
    """
    import os
    from dotenv import load_dotenv

    load_dotenv()

    bot_token = os.getenv("BOT_TOKEN")
    if require_token and not bot_token:
        raise ValueError("BOT_TOKEN is required but not found in environment variables")

    context_store = os.getenv("CONTEXT_STORE", "memory").strip().lower()
    if context_store not in {"memory", "sqlite"}:
        raise ValueError(f"Unknown CONTEXT_STORE '{context_store}', expected 'memory' or 'sqlite'")

    return Config(
        BOT_TOKEN=bot_token,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_FILE=os.getenv("LOG_FILE", "logs/bot.log"),
        OLLAMA_URL=os.getenv("OLLAMA_URL", DEFAULT_OLLAMA_URL),
        OLLAMA_MODEL=os.getenv("OLLAMA_MODEL"),
        MODEL_PATH=os.getenv("MODEL_PATH", "model/corpus.json"),
        RECOGNIZER_THRESHOLD=float(os.getenv("RECOGNIZER_THRESHOLD", str(DEFAULT_THRESHOLD))),
        NER_THRESHOLD=float(os.getenv("NER_THRESHOLD", str(DEFAULT_THRESHOLD))),
        ROUTING_ACTIVE=_as_bool(os.getenv("ROUTING_ACTIVE"), default=False),
        ROUTING_THRESHOLD=float(os.getenv("ROUTING_THRESHOLD", str(DEFAULT_THRESHOLD))),
        CONTEXT_STORE=context_store,
        DB_PATH=os.getenv("DB_PATH", "db/conversation_context.db"),
        CACHE_TTL_MINUTES=int(os.getenv("CACHE_TTL_MINUTES", "30")),
        MAX_CACHE_SIZE=int(os.getenv("MAX_CACHE_SIZE", "1000")),
        MAX_REQUESTS_PER_HOUR=int(os.getenv("MAX_REQUESTS_PER_HOUR", "100")),
        MAX_REQUESTS_PER_MINUTE=int(os.getenv("MAX_REQUESTS_PER_MINUTE", "10")),
    )
