"""
LLM Services - доступ к языковым моделям.

- OllamaClient: локальная LLM для классификации намерений
"""

from .client import LLMClient, OllamaClient, ChatMessage, LLMResponse

__all__ = [
    "LLMClient",
    "OllamaClient",
    "ChatMessage",
    "LLMResponse",
]
