"""
Normalization of raw model records into BusinessEntity objects.

Everything the model emits is untrusted free text. Values are coerced into the
canonical shape here and nowhere else: closed vocabularies for status and match
type, bounded integers for scores, validated URLs, and a derived WhatsApp deep
link when the phone number looks usable.
"""

import logging
import math
import re
import uuid
from typing import Any, Iterable, Optional, Set
from urllib.parse import quote, urlparse

from models.domain import BusinessEntity, BusinessStatus, MatchType, SavedProspect

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "Endereço desconhecido"
NO_ACTIVITY_EVIDENCE = "Sem dados recentes"
BROAD_SWEEP_CATEGORY = "Diversos"

DEFAULT_TRUST_SCORE = 50
UNKNOWN_DAYS = -1

DOMESTIC_COUNTRY_CODE = "55"
WHATSAPP_BASE_URL = "https://wa.me"
WHATSAPP_GREETING = "Olá, encontrei a {name} e gostaria de saber mais sobre seus serviços."

STATUS_ALIASES = {
    "verified": BusinessStatus.VERIFIED,
    "verificado": BusinessStatus.VERIFIED,
    "active": BusinessStatus.ACTIVE,
    "ativo": BusinessStatus.ACTIVE,
    "suspicious": BusinessStatus.SUSPICIOUS,
    "suspeito": BusinessStatus.SUSPICIOUS,
    "closed": BusinessStatus.CLOSED,
    "fechado": BusinessStatus.CLOSED,
    "unknown": BusinessStatus.UNKNOWN,
    "desconhecido": BusinessStatus.UNKNOWN,
}

EXACT_MATCH_ALIASES = {"exact", "exato", "exata"}

_ABSOLUTE_LINK_RE = re.compile(r"^(https?://|www\.)\S+$", re.IGNORECASE)


def name_key(name: str) -> str:
    return name.strip().lower()


def prospect_key(name: str, address: str) -> str:
    return f"{name.strip().lower()}|{address.strip().lower()}"


def build_prospect_index(prospects: Iterable[SavedProspect]) -> frozenset[str]:
    return frozenset(prospect_key(p.name or "", p.address or "") for p in prospects)


def normalize_entity(
    raw: Any,
    seen_names: Set[str],
    default_category: str,
    prospect_index: frozenset[str] = frozenset(),
) -> Optional[BusinessEntity]:
    """
    Build a BusinessEntity from one raw record, or return None.

    None is returned for non-object records, records without a usable name and
    names already present in `seen_names`. Accepted names are added to
    `seen_names`.
    """
    if not isinstance(raw, dict):
        return None

    name = _clean_text(raw.get("name"))
    key = name_key(name)
    if not key:
        logger.debug("Dropping record without a name")
        return None
    if key in seen_names:
        logger.debug(f"Dropping duplicate record: {name}")
        return None
    seen_names.add(key)

    address = _clean_text(raw.get("address")) or UNKNOWN_ADDRESS
    phone = _clean_text(raw.get("phone")) or None

    social_links = _clean_links(raw.get("socialLinks"))
    whatsapp = whatsapp_url(phone, name)
    if whatsapp:
        social_links.insert(0, whatsapp)

    lat, lng = _coordinate(raw.get("lat"), 90), _coordinate(raw.get("lng"), 180)

    return BusinessEntity(
        id=f"biz-{uuid.uuid4().hex}",
        name=name,
        address=address,
        phone=phone,
        website=_clean_website(raw.get("website")),
        social_links=social_links,
        last_activity_evidence=_clean_text(raw.get("lastActivityEvidence")) or NO_ACTIVITY_EVIDENCE,
        days_since_last_activity=_days_since(raw.get("daysSinceLastActivity")),
        trust_score=_trust_score(raw.get("trustScore")),
        status=coerce_status(raw.get("status")),
        category=_clean_text(raw.get("category")) or default_category,
        lat=lat,
        lng=lng,
        match_type=coerce_match_type(raw.get("matchType")),
        is_prospect=prospect_key(name, address) in prospect_index,
    )


def whatsapp_url(phone: Optional[str], company_name: str) -> Optional[str]:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone).lstrip("0")
    if len(digits) < 10:
        return None
    if len(digits) <= 11:
        digits = f"{DOMESTIC_COUNTRY_CODE}{digits}"
    message = quote(WHATSAPP_GREETING.format(name=company_name), safe="")
    return f"{WHATSAPP_BASE_URL}/{digits}?text={message}"


def coerce_status(value: Any) -> BusinessStatus:
    if isinstance(value, str):
        return STATUS_ALIASES.get(value.strip().lower(), BusinessStatus.UNKNOWN)
    return BusinessStatus.UNKNOWN


def coerce_match_type(value: Any) -> MatchType:
    if value is None:
        return MatchType.EXACT
    text = str(value).strip().lower()
    if not text or text in EXACT_MATCH_ALIASES:
        return MatchType.EXACT
    return MatchType.NEARBY


def is_absolute_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and "." in parsed.netloc and " " not in value.strip()


def _clean_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    return str(value).strip()


def _clean_website(value: Any) -> Optional[str]:
    return value.strip() if is_absolute_url(value) else None


def _clean_links(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [link.strip() for link in value if isinstance(link, str) and _ABSOLUTE_LINK_RE.match(link.strip())]


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _trust_score(value: Any) -> int:
    number = _as_number(value)
    if number is None:
        return DEFAULT_TRUST_SCORE
    return max(0, min(100, int(round(number))))


def _days_since(value: Any) -> int:
    number = _as_number(value)
    if number is None or number < 0:
        return UNKNOWN_DAYS
    return int(number)


def _coordinate(value: Any, limit: float) -> Optional[float]:
    number = _as_number(value)
    if number is None or abs(number) > limit:
        return None
    return number
