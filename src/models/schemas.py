from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from models.domain import BusinessStatus, MatchType


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class CoordinatesSchema(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class SearchRequest(CamelModel):
    segment: str = Field(default="", max_length=255, description="Business segment; empty for a broad sweep")
    region: str = Field(..., min_length=1, max_length=255)
    max_results: int = Field(default=20, ge=1, le=500)
    coordinates: Optional[CoordinatesSchema] = None


class BusinessEntityResponse(CamelModel):
    id: str
    name: str
    address: str
    phone: Optional[str]
    website: Optional[str]
    social_links: List[str]
    last_activity_evidence: str
    days_since_last_activity: int
    trust_score: int
    status: BusinessStatus
    category: str
    lat: Optional[float]
    lng: Optional[float]
    match_type: MatchType
    is_prospect: bool


class OutreachEmailRequest(CamelModel):
    id: str = ""
    name: str = Field(..., min_length=1)
    address: str = ""
    category: str = ""
    last_activity_evidence: str = ""


class OutreachEmailResponse(BaseModel):
    email: str
