import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from config import ConfigurationError, settings
from models.domain import LLMProvider

logger = logging.getLogger(__name__)

ENV_API_KEYS = {
    LLMProvider.GEMINI: lambda: settings.gemini_api_key,
    LLMProvider.OPENAI: lambda: settings.openai_api_key,
}

TERMINAL_STATUS_CODES = frozenset({400, 401, 403})


class ModelInvocationError(Exception):
    """Base class for failures reported by a generation backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TerminalModelError(ModelInvocationError):
    """Bad credentials, missing permission or a malformed request. Never retried."""


class TransientModelError(ModelInvocationError):
    """Rate limiting, timeouts and server-side failures. Safe to retry."""


def classify_status(status_code: int, message: str) -> ModelInvocationError:
    if status_code in TERMINAL_STATUS_CODES:
        return TerminalModelError(message, status_code)
    return TransientModelError(message, status_code)


@dataclass(frozen=True)
class GenerationResult:
    text: str
    tokens_in: int = 0
    tokens_out: int = 0
    latency: float = 0.0


class BaseLLMService(ABC):
    provider: LLMProvider
    default_model: str
    api_base: str

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    def _get_api_key(self) -> str:
        if self._api_key:
            return self._api_key

        env_key_getter = ENV_API_KEYS.get(self.provider)
        if env_key_getter:
            env_key = env_key_getter()
            if env_key:
                return env_key

        raise ConfigurationError(f"No {self.provider.value} API key configured")

    def ensure_configured(self) -> None:
        self._get_api_key()

    @abstractmethod
    async def generate(
        self,
        model_id: Optional[str],
        prompt: str,
        temperature: float = 0.5,
        *,
        grounded: bool = True,
    ) -> GenerationResult:
        pass
