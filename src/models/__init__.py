from models.domain import (
    BusinessEntity,
    BusinessStatus,
    Coordinates,
    LLMProvider,
    MatchType,
    SavedProspect,
)

__all__ = [
    "BusinessEntity",
    "BusinessStatus",
    "Coordinates",
    "LLMProvider",
    "MatchType",
    "SavedProspect",
]
