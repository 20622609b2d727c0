import asyncio
import logging
import os
import signal
import sys

from bot import create_bot
from config import load_config
from utils import setup_logger
from utils.metrics import metrics

logger = setup_logger(
    name="bot_logger",
    log_file="logs/bot.log",
    level=logging.INFO
)

RUNTIME_DIRECTORIES = ("logs", "db", "model")


class GracefulBot:
    """Жизненный цикл бота: запуск polling и освобождение хранилища и LLM"""

    def __init__(self):
        self.bot = None
        self.dp = None
        self.is_running = False

    @property
    def recognizer(self):
        return self.dp["recognizer"] if self.dp is not None else None

    async def _check_engine(self):
        client = self.recognizer.engine.client
        if await client.ensure_model():
            logger.info(f"Модель {client.model} готова")
        else:
            logger.warning(f"Модель {client.model} недоступна, ходы будут считаться нераспознанными")

    async def startup(self):
        """Сборка бота и запуск polling"""
        config = load_config()
        logger.setLevel(config.LOG_LEVEL)
        logger.info(
            f"Запуск: хранилище контекста={config.CONTEXT_STORE}, "
            f"роутинг={'вкл' if config.ROUTING_ACTIVE else 'выкл'}"
        )

        try:
            self.bot, self.dp = create_bot(config)
            self.is_running = True
            await self._check_engine()
            await self.dp.start_polling(self.bot)
        except Exception as e:
            logger.error(f"Критическая ошибка при запуске бота: {e}", exc_info=True)
            await self.shutdown()
            raise

    async def shutdown(self):
        """Закрыть хранилище контекста, клиент LLM и сессию бота"""
        if not self.is_running:
            return
        self.is_running = False
        logger.info("Завершение работы бота...")

        try:
            await self.recognizer.conversation_context.close()
            await self.recognizer.engine.client.close()
            if self.bot is not None:
                await self.bot.session.close()
        except Exception as e:
            logger.error(f"Ошибка при завершении работы: {e}", exc_info=True)
        finally:
            metrics.log_daily_stats()
            logger.info("Бот завершил работу")


async def main():
    for directory in RUNTIME_DIRECTORIES:
        os.makedirs(directory, exist_ok=True)

    bot_instance = GracefulBot()

    def signal_handler(sig, frame):
        logger.info(f"Получен сигнал {sig}. Завершение работы...")
        asyncio.create_task(bot_instance.shutdown())
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await bot_instance.startup()
    except KeyboardInterrupt:
        logger.info("Получен сигнал прерывания")
    finally:
        await bot_instance.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Программа прервана пользователем")
    except Exception as e:
        logger.error(f"Критическая ошибка приложения: {e}", exc_info=True)
        sys.exit(1)
