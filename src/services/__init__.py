from .base_llm import (
    BaseLLMService,
    GenerationResult,
    ModelInvocationError,
    TerminalModelError,
    TransientModelError,
)
from .remote_llms import GeminiService, LLMRouter, OpenAICompatibleService
