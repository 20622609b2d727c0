import os
from typing import Optional, Tuple

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums.parse_mode import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage

from config import Config, load_config
from dialogs import DialogBot
from handlers import register_handlers
from middlewares import Middleware
from nlu import (
    ConversationContextStore,
    MemoryConversationContext,
    Recognizer,
    RoutingDecider,
    RoutingHooks,
    SqliteConversationContext,
)
from nlu.classifiers import LLMRecognitionEngine
from services.llm import OllamaClient
from utils import setup_logger

logger = setup_logger(name="bot_factory")


def build_context_store(config: Config) -> ConversationContextStore:
    if config.CONTEXT_STORE == "sqlite":
        directory = os.path.dirname(config.DB_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return SqliteConversationContext(
            db_path=config.DB_PATH,
            cache_ttl_minutes=config.CACHE_TTL_MINUTES,
            max_cache_size=config.MAX_CACHE_SIZE,
        )
    return MemoryConversationContext()


def build_recognizer(
    config: Config,
    client: Optional[OllamaClient] = None,
    store: Optional[ConversationContextStore] = None,
) -> Recognizer:
    """Собрать рекогнайзер: движок LLM, модель из MODEL_PATH и хранилище контекста."""
    client = client or OllamaClient(base_url=config.OLLAMA_URL, model=config.OLLAMA_MODEL)
    engine = LLMRecognitionEngine(client, ner_threshold=config.NER_THRESHOLD)
    recognizer = Recognizer(
        engine,
        store or build_context_store(config),
        threshold=config.RECOGNIZER_THRESHOLD,
    )
    if os.path.exists(config.MODEL_PATH):
        recognizer.load(config.MODEL_PATH)
    else:
        logger.warning(f"Модель {config.MODEL_PATH} не найдена, рекогнайзер не обучен")
    return recognizer


def create_dialog_bot(
    recognizer: Recognizer,
    config: Config,
    hooks: Optional[RoutingHooks] = None,
) -> DialogBot:
    dialog_bot = DialogBot()
    RoutingDecider(recognizer, hooks).set_routing(
        dialog_bot,
        activate=config.ROUTING_ACTIVE,
        routing_threshold=config.ROUTING_THRESHOLD,
    )
    return dialog_bot


def create_bot(config: Optional[Config] = None) -> Tuple[Bot, Dispatcher]:

    config = config or load_config()

    bot = Bot(token=config.BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))
    dp = Dispatcher(storage=MemoryStorage())
    dp.message.middleware(Middleware(config))

    recognizer = build_recognizer(config)
    dp["recognizer"] = recognizer
    dp["dialog_bot"] = create_dialog_bot(recognizer, config)

    register_handlers(dp)

    return bot, dp
