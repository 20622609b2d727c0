"""Исключения модуля NLU."""


class NLUError(Exception):
    """Базовое исключение распознавания."""


class RecognitionUnavailableError(NLUError):
    """Движок распознавания не смог обработать высказывание."""

    def __init__(self, message: str, utterance: str = None):
        super().__init__(message)
        self.utterance = utterance


class ContextStoreError(NLUError):
    """Ошибка чтения или записи контекста диалога."""


class EngineNotTrainedError(NLUError):
    """Движок используется до обучения."""


class CorpusError(NLUError):
    """Корпус обучения пуст или повреждён."""
