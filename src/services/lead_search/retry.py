import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config import ConfigurationError, settings
from services.base_llm import (
    BaseLLMService,
    GenerationResult,
    ModelInvocationError,
    TerminalModelError,
    TransientModelError,
)

logger = logging.getLogger(__name__)

BROAD_SEARCH_TEMPERATURE = 0.7
FOCUSED_SEARCH_TEMPERATURE = 0.4

SleepFn = Callable[[float], Awaitable[None]]


def search_temperature(broad_search: bool) -> float:
    return BROAD_SEARCH_TEMPERATURE if broad_search else FOCUSED_SEARCH_TEMPERATURE


def backoff_delay_ms(attempt: int, base_delay_ms: int) -> int:
    return base_delay_ms * 2 ** (attempt - 1)


def is_terminal_error(exc: BaseException) -> bool:
    if isinstance(exc, (TerminalModelError, ConfigurationError)):
        return True
    if isinstance(exc, ModelInvocationError):
        return False
    status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    if status in (400, 403):
        return True
    return "API_KEY" in str(exc)


class RetryingModelCaller:
    """Calls a generation backend with bounded exponential backoff."""

    def __init__(
        self,
        service: BaseLLMService,
        max_attempts: Optional[int] = None,
        base_delay_ms: Optional[int] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.service = service
        self.max_attempts = max(1, max_attempts or settings.retry_max_attempts)
        self.base_delay_ms = settings.retry_base_delay_ms if base_delay_ms is None else base_delay_ms
        self._sleep = sleep

    async def call(self, model_id: Optional[str], prompt: str, broad_search: bool) -> GenerationResult:
        temperature = search_temperature(broad_search)
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.service.generate(model_id, prompt, temperature)
            except (TerminalModelError, ConfigurationError):
                logger.warning(f"Generation attempt {attempt} rejected, not retrying")
                raise
            except Exception as e:
                logger.warning(f"Generation attempt {attempt}/{self.max_attempts} failed: {e}")
                if is_terminal_error(e):
                    raise TerminalModelError(str(e), getattr(e, "status_code", None)) from e
                if attempt >= self.max_attempts:
                    if isinstance(e, TransientModelError):
                        raise
                    raise TransientModelError(f"Model call failed after {attempt} attempts: {e}") from e
            await self._sleep(backoff_delay_ms(attempt, self.base_delay_ms) / 1000)
