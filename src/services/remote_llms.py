import logging
import time
from typing import Optional

import httpx
import openai
from openai import AsyncOpenAI

from config import settings
from models.domain import LLMProvider
from services.base_llm import (
    BaseLLMService,
    GenerationResult,
    TerminalModelError,
    TransientModelError,
    classify_status,
)

logger = logging.getLogger(__name__)


class GeminiService(BaseLLMService):
    """Gemini REST backend with Google Search grounding."""

    provider = LLMProvider.GEMINI
    default_model = "gemini-2.5-flash"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(api_key)
        self.api_base = settings.gemini_api_base.rstrip("/")
        self.timeout = timeout or settings.llm_timeout_seconds

    def _build_headers(self, api_key: str) -> dict:
        return {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

    def _build_payload(self, prompt: str, temperature: float, grounded: bool) -> dict:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": temperature},
        }
        if grounded:
            payload["tools"] = [{"google_search": {}}]
        return payload

    async def generate(
        self,
        model_id: Optional[str],
        prompt: str,
        temperature: float = 0.5,
        *,
        grounded: bool = True,
    ) -> GenerationResult:
        api_key = self._get_api_key()
        model = model_id or self.default_model
        url = f"{self.api_base}/models/{model}:generateContent"

        payload = self._build_payload(prompt, temperature, grounded)
        headers = self._build_headers(api_key)

        start_time = time.time()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.error(f"Gemini API error {status}: {e.response.text[:300]}")
                raise classify_status(status, f"Gemini API error {status}") from e
            except httpx.HTTPError as e:
                logger.error(f"Gemini transport error: {e}")
                raise TransientModelError(f"Gemini transport error: {e}") from e
            except ValueError as e:
                raise TransientModelError(f"Gemini returned a non-JSON body: {e}") from e
        latency = time.time() - start_time
        return self._parse_response(result, latency)

    def _parse_response(self, result: dict, latency: float) -> GenerationResult:
        candidates = result.get("candidates") or []
        parts = []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        usage = result.get("usageMetadata") or {}
        return GenerationResult(
            text=text,
            tokens_in=usage.get("promptTokenCount", 0),
            tokens_out=usage.get("candidatesTokenCount", 0),
            latency=latency,
        )


class OpenAICompatibleService(BaseLLMService):
    """Chat-completions backend. Has no web grounding; `grounded` is ignored."""

    provider = LLMProvider.OPENAI
    default_model = "gpt-4o-mini"

    def __init__(self, api_key: Optional[str] = None, api_base: Optional[str] = None):
        super().__init__(api_key)
        self.api_base = api_base or settings.openai_api_base

    async def generate(
        self,
        model_id: Optional[str],
        prompt: str,
        temperature: float = 0.5,
        *,
        grounded: bool = True,
    ) -> GenerationResult:
        api_key = self._get_api_key()
        model = model_id or self.default_model

        client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.api_base,
            timeout=settings.llm_timeout_seconds,
            max_retries=0,
        )

        start_time = time.time()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError, openai.BadRequestError) as e:
            logger.error(f"{self.provider.value} rejected the request: {e}")
            raise TerminalModelError(str(e), e.status_code) from e
        except openai.APIStatusError as e:
            logger.error(f"{self.provider.value} API error: {e}")
            raise classify_status(e.status_code, str(e)) from e
        except openai.APIError as e:
            logger.error(f"{self.provider.value} transport error: {e}")
            raise TransientModelError(str(e)) from e
        latency = time.time() - start_time

        answer = response.choices[0].message.content or ""
        usage = response.usage
        return GenerationResult(
            text=answer,
            tokens_in=usage.prompt_tokens if usage else 0,
            tokens_out=usage.completion_tokens if usage else 0,
            latency=latency,
        )


class LLMRouter:
    def __init__(self):
        self._services: dict[LLMProvider, BaseLLMService] = {}

    def get_service(self, provider: str | LLMProvider) -> BaseLLMService:
        provider_enum = LLMProvider(provider.lower()) if isinstance(provider, str) else provider
        if provider_enum not in self._services:
            self._services[provider_enum] = self._create_service(provider_enum)
        return self._services[provider_enum]

    def _create_service(self, provider: LLMProvider) -> BaseLLMService:
        if provider == LLMProvider.GEMINI:
            return GeminiService()
        if provider == LLMProvider.OPENAI:
            return OpenAICompatibleService()
        raise ValueError(f"No generation service for provider: {provider}")


def default_generation_service() -> BaseLLMService:
    return LLMRouter().get_service(settings.llm_provider)
