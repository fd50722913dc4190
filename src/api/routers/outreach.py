"""API router for outreach e-mail drafts."""

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from config import ConfigurationError
from models.domain import BusinessEntity
from models.schemas import OutreachEmailRequest, OutreachEmailResponse
from services.base_llm import BaseLLMService
from services.outreach import generate_outreach_email
from services.remote_llms import default_generation_service

router = APIRouter()


@lru_cache(maxsize=1)
def get_generation_service() -> BaseLLMService:
    return default_generation_service()


@router.post("/email", response_model=OutreachEmailResponse)
async def create_outreach_email(
    email_request: OutreachEmailRequest,
    service: BaseLLMService = Depends(get_generation_service),
) -> OutreachEmailResponse:
    entity = BusinessEntity(
        id=email_request.id,
        name=email_request.name,
        address=email_request.address,
        category=email_request.category,
        last_activity_evidence=email_request.last_activity_evidence,
    )
    try:
        email = await generate_outreach_email(entity, service)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return OutreachEmailResponse(email=email)
