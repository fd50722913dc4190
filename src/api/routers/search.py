"""API router for incremental business search."""

import asyncio
import json
import logging
from dataclasses import asdict
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import StreamingResponse

from config import ConfigurationError
from models.domain import Coordinates
from models.schemas import BusinessEntityResponse, SearchRequest
from services.lead_search import LeadSearchOrchestrator, SearchEvent

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_orchestrator() -> LeadSearchOrchestrator:
    return LeadSearchOrchestrator()


def serialize_event(event: SearchEvent) -> str:
    payload: dict = {"type": event.type}
    if event.type in ("progress", "error"):
        payload["message"] = event.message
    if event.type == "batch":
        payload["entities"] = [
            BusinessEntityResponse.model_validate(asdict(entity)).model_dump(mode="json", by_alias=True)
            for entity in event.entities
        ]
    if event.type == "done":
        payload["total"] = event.total
    return json.dumps(payload, ensure_ascii=False) + "\n"


@router.post("")
async def search_businesses(
    search_request: SearchRequest,
    request: Request,
    orchestrator: LeadSearchOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """
    Run an incremental search and stream it as NDJSON.

    Each line is one event: `progress` (message), `batch` (only the new
    entities of a round), then a final `done` (total) or `error` (message).
    Disconnecting stops the search before its next model call.
    """
    if not search_request.region.strip():
        raise HTTPException(status_code=422, detail="region must not be blank")
    try:
        orchestrator.ensure_configured()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    coordinates = None
    if search_request.coordinates is not None:
        coordinates = Coordinates(lat=search_request.coordinates.lat, lng=search_request.coordinates.lng)
    cancel_signal = asyncio.Event()

    async def event_stream():
        async for event in orchestrator.search_streaming(
            search_request.segment,
            search_request.region,
            search_request.max_results,
            coordinates=coordinates,
            cancel_signal=cancel_signal,
        ):
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling search")
                cancel_signal.set()
            yield serialize_event(event)

    return StreamingResponse(event_stream(), media_type="application/x-ndjson")


@router.delete("/cache", status_code=204)
async def clear_search_cache(
    orchestrator: LeadSearchOrchestrator = Depends(get_orchestrator),
) -> Response:
    orchestrator.clear_cache()
    return Response(status_code=204)
