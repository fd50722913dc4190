import enum
from dataclasses import dataclass, field
from typing import List, Optional


class LLMProvider(str, enum.Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


class BusinessStatus(str, enum.Enum):
    VERIFIED = "Verified"
    ACTIVE = "Active"
    SUSPICIOUS = "Suspicious"
    CLOSED = "Closed"
    UNKNOWN = "Unknown"


class MatchType(str, enum.Enum):
    EXACT = "EXACT"
    NEARBY = "NEARBY"


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class SavedProspect:
    name: str
    address: str


@dataclass(frozen=True)
class BusinessEntity:
    id: str
    name: str
    address: str
    phone: Optional[str] = None
    website: Optional[str] = None
    social_links: List[str] = field(default_factory=list)
    last_activity_evidence: str = ""
    days_since_last_activity: int = -1
    trust_score: int = 50
    status: BusinessStatus = BusinessStatus.UNKNOWN
    category: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    match_type: MatchType = MatchType.EXACT
    is_prospect: bool = False
