"""
Context Manager - хранение контекста диалога.

Контекст хранится по идентификатору беседы, который берётся из хода
(turn.conversation_id). Параллельные ходы одной беседы не сериализуются:
если хранилище само не упорядочивает запись по ключу, два хода могут
потерять обновления друг друга.
"""

import asyncio
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import aiosqlite

from nlu.errors import ContextStoreError
from nlu.models import ConversationContext
from utils.logger import setup_logger

logger = setup_logger(name="context_manager", level=logging.INFO)


def get_conversation_id(turn: Any) -> str:
    """Идентификатор беседы для хода."""
    conversation_id = getattr(turn, "conversation_id", None)
    if conversation_id is None or conversation_id == "":
        raise ContextStoreError("No conversation id found")
    return str(conversation_id)


class ConversationContextStore(ABC):
    """Хранилище контекста диалога по идентификатору беседы."""

    @abstractmethod
    async def get_conversation_context(self, turn: Any) -> ConversationContext:
        """Получить контекст беседы; для новой беседы - пустой."""

    @abstractmethod
    async def set_conversation_context(self, turn: Any, context: ConversationContext):
        """Сохранить контекст беседы."""

    async def close(self):
        """Освободить ресурсы хранилища."""
        pass


class MemoryConversationContext(ConversationContextStore):
    """Хранилище в памяти процесса. Хранит и отдаёт копии."""

    def __init__(self):
        self._contexts: Dict[str, Dict[str, Any]] = {}

    async def get_conversation_context(self, turn: Any) -> ConversationContext:
        conversation_id = get_conversation_id(turn)
        return ConversationContext(self._contexts.get(conversation_id, {}))

    async def set_conversation_context(self, turn: Any, context: ConversationContext):
        conversation_id = get_conversation_id(turn)
        self._contexts[conversation_id] = ConversationContext(context).to_storage()

    def __len__(self) -> int:
        return len(self._contexts)


class SqliteConversationContext(ConversationContextStore):
    """
    Хранилище в SQLite с кэшем в памяти.

    Активные беседы кэшируются; неиспользуемые записи периодически
    сбрасываются в БД и вытесняются из кэша.
    """

    def __init__(
        self,
        db_path: str = "db/conversation_context.db",
        cache_ttl_minutes: int = 30,  # TTL кэша в минутах
        cleanup_interval_minutes: int = 5,  # Интервал очистки кэша
        max_cache_size: int = 1000,  # Максимальный размер кэша
    ):
        self.db_path = db_path
        self.cache_ttl = timedelta(minutes=cache_ttl_minutes)
        self.cleanup_interval = timedelta(minutes=cleanup_interval_minutes)
        self.max_cache_size = max_cache_size

        self._cache: Dict[str, Dict[str, Any]] = {}
        self._last_access: Dict[str, datetime] = {}  # Время последнего доступа
        self._initialized = False
        self._cleanup_task: Optional[asyncio.Task] = None
        self._init_lock = asyncio.Lock()

    async def init_db(self):
        """Инициализация таблицы в БД (однократно, в том числе при одновременных ходах)."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute("""
                        CREATE TABLE IF NOT EXISTS conversation_contexts (
                            conversation_id TEXT PRIMARY KEY,
                            context TEXT NOT NULL,
                            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                        )
                    """)
                    await db.commit()
            except sqlite3.Error as e:
                raise ContextStoreError(f"Cannot initialize context database {self.db_path}: {e}") from e

            self._initialized = True

            # Запускаем фоновую задачу очистки кэша
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info(f"Хранилище контекста инициализировано: {self.db_path}")

    async def close(self):
        """Закрытие хранилища: остановить очистку и сбросить кэш в БД."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        await self._flush_cache()
        logger.info("Хранилище контекста закрыто")

    async def _cleanup_loop(self):
        """Фоновая задача для периодической очистки кэша."""
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval.total_seconds())
                await self._cleanup_cache()
            except asyncio.CancelledError:
                break
            except ContextStoreError as e:
                logger.error(f"Ошибка в cleanup loop: {e}")

    async def _cleanup_cache(self):
        """Вытеснение устаревших и лишних контекстов из кэша."""
        now = datetime.now()
        expired = [cid for cid, last_access in self._last_access.items() if now - last_access > self.cache_ttl]

        for conversation_id in expired:
            self._evict(conversation_id)

        if expired:
            logger.debug(f"Очищено {len(expired)} устаревших контекстов из кэша")

        # Если кэш всё ещё слишком большой, удаляем самые старые
        if len(self._cache) > self.max_cache_size:
            oldest = sorted(self._last_access.items(), key=lambda x: x[1])
            to_remove = len(self._cache) - self.max_cache_size
            for conversation_id, _ in oldest[:to_remove]:
                self._evict(conversation_id)
            logger.debug(f"Удалено {to_remove} контекстов из-за превышения лимита кэша")

    def _evict(self, conversation_id: str):
        # Кэш write-through: в БД уже лежит актуальная версия
        self._cache.pop(conversation_id, None)
        self._last_access.pop(conversation_id, None)

    async def _flush_cache(self):
        """Сохранить все контексты из кэша в БД."""
        if not self._initialized:
            return
        saved = 0
        for conversation_id, data in list(self._cache.items()):
            try:
                await self._save(conversation_id, data)
                saved += 1
            except ContextStoreError as e:
                logger.error(f"Ошибка при сохранении контекста {conversation_id}: {e}")
        logger.info(f"Сохранено {saved} контекстов в БД")

    async def get_conversation_context(self, turn: Any) -> ConversationContext:
        conversation_id = get_conversation_id(turn)
        await self.init_db()

        self._last_access[conversation_id] = datetime.now()

        if conversation_id in self._cache:
            return ConversationContext(self._cache[conversation_id])

        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute(
                    "SELECT context FROM conversation_contexts WHERE conversation_id = ?",
                    (conversation_id,)
                ) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise ContextStoreError(f"Cannot load context for {conversation_id}: {e}") from e

        data = self._deserialize(row[0]) if row else {}
        self._cache[conversation_id] = data
        return ConversationContext(data)

    async def set_conversation_context(self, turn: Any, context: ConversationContext):
        conversation_id = get_conversation_id(turn)
        data = ConversationContext(context).to_storage()
        await self.init_db()
        await self._save(conversation_id, data)
        self._cache[conversation_id] = data
        self._last_access[conversation_id] = datetime.now()

    async def clear_conversation_context(self, turn: Any):
        """Удалить контекст беседы."""
        conversation_id = get_conversation_id(turn)
        await self.init_db()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    "DELETE FROM conversation_contexts WHERE conversation_id = ?",
                    (conversation_id,)
                )
                await db.commit()
        except sqlite3.Error as e:
            raise ContextStoreError(f"Cannot clear context for {conversation_id}: {e}") from e
        self._evict(conversation_id)

    async def _save(self, conversation_id: str, data: Dict[str, Any]):
        """Сохранить контекст в БД."""
        try:
            payload = json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ContextStoreError(f"Context for {conversation_id} is not JSON serializable: {e}") from e

        now = datetime.now().isoformat()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    INSERT INTO conversation_contexts (conversation_id, context, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(conversation_id) DO UPDATE SET
                        context = excluded.context,
                        updated_at = excluded.updated_at
                """, (conversation_id, payload, now, now))
                await db.commit()
        except sqlite3.Error as e:
            raise ContextStoreError(f"Cannot save context for {conversation_id}: {e}") from e

    def _deserialize(self, payload: str) -> Dict[str, Any]:
        try:
            data = json.loads(payload or "{}")
        except json.JSONDecodeError as e:
            raise ContextStoreError(f"Corrupted context payload: {e}") from e
        return data if isinstance(data, dict) else {}
