"""
Incremental business search backed by a web-grounded generation model.

The pipeline is: orchestrator -> retrying model caller -> JSON repair ->
entity normalizer -> streamed batches, with a TTL result cache beside the
orchestrator.
"""

from services.lead_search.json_repair import repair_json_array, scan_object_spans
from services.lead_search.normalizer import normalize_entity, whatsapp_url
from services.lead_search.orchestrator import (
    LeadSearchOrchestrator,
    SearchConnectivityError,
    SearchEvent,
)
from services.lead_search.prospects import ProspectSnapshotProvider, StaticProspectSnapshot
from services.lead_search.result_cache import CacheEntry, SearchResultCache, build_cache_key
from services.lead_search.retry import RetryingModelCaller

__all__ = [
    "CacheEntry",
    "LeadSearchOrchestrator",
    "ProspectSnapshotProvider",
    "RetryingModelCaller",
    "SearchConnectivityError",
    "SearchEvent",
    "SearchResultCache",
    "StaticProspectSnapshot",
    "build_cache_key",
    "normalize_entity",
    "repair_json_array",
    "scan_object_spans",
    "whatsapp_url",
]
