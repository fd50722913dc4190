import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import outreach, search
from config import ConfigurationError, settings
from services.remote_llms import default_generation_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    logger.info(f"Using {settings.llm_provider} model {settings.search_model} for searches")
    try:
        default_generation_service().ensure_configured()
    except ConfigurationError as e:
        logger.warning(f"{e}; search and outreach endpoints will answer 503")
    yield


app = FastAPI(
    title=settings.app_name,
    description="Incremental AI-grounded business prospecting",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search.router, prefix="/api/v1/search", tags=["search"])
app.include_router(outreach.router, prefix="/api/v1/outreach", tags=["outreach"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health():
    return {"status": "healthy", "provider": settings.llm_provider}
