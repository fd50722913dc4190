import logging
from typing import Optional

from config import settings
from models.domain import BusinessEntity
from services.base_llm import BaseLLMService, ModelInvocationError
from services.lead_search.normalizer import NO_ACTIVITY_EVIDENCE
from services.lead_search.prompts import load_prompt

logger = logging.getLogger(__name__)

OUTREACH_TEMPERATURE = 0.7
EMPTY_EMAIL_FALLBACK = "Não foi possível gerar o e-mail."
MODEL_ERROR_FALLBACK = "Erro ao conectar com a IA."


def build_outreach_prompt(entity: BusinessEntity) -> str:
    return load_prompt(
        "outreach_email",
        name=entity.name,
        category=entity.category or "Não informado",
        evidence=entity.last_activity_evidence or NO_ACTIVITY_EVIDENCE,
    )


async def generate_outreach_email(
    entity: BusinessEntity,
    service: Optional[BaseLLMService] = None,
    model_id: Optional[str] = None,
) -> str:
    if service is None:
        from services.remote_llms import default_generation_service
        service = default_generation_service()
    service.ensure_configured()

    prompt = build_outreach_prompt(entity)
    try:
        result = await service.generate(
            model_id or settings.outreach_model,
            prompt,
            OUTREACH_TEMPERATURE,
            grounded=False,
        )
    except ModelInvocationError as e:
        logger.error(f"Outreach e-mail generation failed for {entity.name}: {e}")
        return MODEL_ERROR_FALLBACK
    return result.text.strip() or EMPTY_EMAIL_FALLBACK
