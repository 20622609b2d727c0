"""
LLM Client - доступ к локальной LLM через Ollama.

Используется движком распознавания для классификации намерений.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from config.constants import DEFAULT_OLLAMA_URL, LLM_TIMEOUT_SECONDS
from utils.logger import setup_logger

logger = setup_logger(name="llm_client", level=logging.INFO)

# Загрузка модели может идти долго
PULL_TIMEOUT_SECONDS = 600.0


@dataclass
class ChatMessage:
    """Сообщение в чате."""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMResponse:
    """Ответ от LLM."""
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class LLMClient(ABC):
    """Клиент чат-модели, которой движок отдаёт классификацию."""

    @abstractmethod
    async def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Args:
            messages: История чата
            temperature: Температура генерации
            max_tokens: Ограничение длины ответа
            json_mode: Требовать от модели ответ в JSON
        """

    @abstractmethod
    async def is_available(self) -> bool:
        """Проверить доступность сервиса."""

    async def close(self):
        """Освободить ресурсы клиента."""


class OllamaClient(LLMClient):
    """
    Клиент Ollama (/api/chat, /api/tags, /api/pull).

    HTTP-клиент создаётся лениво и переиспользуется до close().
    Ошибки транспорта и статуса в chat() пробрасываются как httpx.HTTPError.
    """

    DEFAULT_MODEL = "qwen2.5:3b"

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        model: Optional[str] = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http

    async def close(self):
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def list_models(self) -> List[str]:
        """Имена моделей, уже загруженных в Ollama."""
        response = await self.http.get("/api/tags")
        response.raise_for_status()
        return [m.get("name", "") for m in response.json().get("models", [])]

    async def is_available(self) -> bool:
        try:
            await self.list_models()
            return True
        except httpx.HTTPError as e:
            logger.warning(f"Ollama недоступна по адресу {self.base_url}: {e}")
            return False

    async def ensure_model(self) -> bool:
        """Загрузить модель, если её ещё нет в Ollama."""
        try:
            if any(self.model in name for name in await self.list_models()):
                return True
            logger.info(f"Модель {self.model} не найдена, загружаем...")
            response = await self.http.post(
                "/api/pull",
                json={"name": self.model, "stream": False},
                timeout=httpx.Timeout(PULL_TIMEOUT_SECONDS),
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Не удалось подготовить модель {self.model}: {e}")
            return False

    def _payload(
        self,
        messages: List[ChatMessage],
        temperature: float,
        max_tokens: Optional[int],
        json_mode: bool,
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            options["num_predict"] = max_tokens
        payload = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": False,
            "options": options,
        }
        if json_mode:
            payload["format"] = "json"
        return payload

    async def chat(
        self,
        messages: List[ChatMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs
    ) -> LLMResponse:
        payload = self._payload(messages, temperature, max_tokens, kwargs.get("json_mode", False))
        try:
            response = await self.http.post("/api/chat", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Ошибка Ollama chat ({self.model}): {e}")
            raise

        data = response.json()
        return LLMResponse(
            content=data.get("message", {}).get("content", ""),
            model=data.get("model", self.model),
            usage={
                "prompt_tokens": data.get("prompt_eval_count", 0),
                "completion_tokens": data.get("eval_count", 0),
            },
            finish_reason=data.get("done_reason", "stop"),
        )
