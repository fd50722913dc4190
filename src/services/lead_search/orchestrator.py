"""
Incremental AI-backed business search.

A search runs in rounds. Each round asks the generation backend for a small
batch of businesses the run has not seen yet, recovers whatever records the
answer contains, normalizes them and hands only the new ones to the caller.
The loop stops when the target is reached, when the round budget runs out,
when rounds stop producing new names, or when the caller cancels. Finished
runs are cached so an identical search inside the TTL never hits the model.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, List, Optional, Protocol, Set

from config import settings
from models.domain import BusinessEntity, Coordinates
from services.base_llm import BaseLLMService, ModelInvocationError
from services.lead_search.json_repair import repair_json_array
from services.lead_search.normalizer import (
    BROAD_SWEEP_CATEGORY,
    build_prospect_index,
    normalize_entity,
)
from services.lead_search.prompts import load_prompt
from services.lead_search.prospects import ProspectSnapshotProvider, StaticProspectSnapshot
from services.lead_search.result_cache import SearchResultCache, build_cache_key
from services.lead_search.retry import RetryingModelCaller, SleepFn

logger = logging.getLogger(__name__)

BROAD_SWEEP_LABEL = "Varredura Geral (Multisetorial)"
EXTRA_ROUNDS = 5
SATURATION_GRACE_ROUNDS = 2

ProgressCallback = Callable[[str], None]
BatchCallback = Callable[[List[BusinessEntity]], None]


class SearchConnectivityError(RuntimeError):
    """A model call failed before the search had found anything."""


class CancelSignal(Protocol):
    def is_set(self) -> bool:
        ...


@dataclass
class SearchEvent:
    type: str
    message: str = ""
    entities: List[BusinessEntity] = field(default_factory=list)
    total: int = 0


def is_broad_search(segment: str) -> bool:
    cleaned = (segment or "").strip()
    return not cleaned or cleaned == BROAD_SWEEP_LABEL


def max_rounds(target_count: int) -> int:
    return math.ceil(target_count / 10) + EXTRA_ROUNDS


def round_batch_size(round_number: int, remaining: int, first_batch_size: int, batch_size: int) -> int:
    size = first_batch_size if round_number == 1 else batch_size
    return max(1, min(size, remaining))


def build_search_prompt(
    segment: str,
    region: str,
    batch_size: int,
    exclusion_names: List[str],
    coordinates: Optional[Coordinates] = None,
) -> str:
    return load_prompt(
        "business_search",
        broad=is_broad_search(segment),
        segment=segment,
        region=region,
        batch_size=batch_size,
        exclusion_names=exclusion_names,
        coordinates=coordinates,
    )


def _noop(*_args) -> None:
    return None


def _is_cancelled(cancel_signal: Optional[CancelSignal]) -> bool:
    return cancel_signal is not None and cancel_signal.is_set()


class LeadSearchOrchestrator:
    def __init__(
        self,
        service: Optional[BaseLLMService] = None,
        cache: Optional[SearchResultCache] = None,
        prospects: Optional[ProspectSnapshotProvider] = None,
        *,
        model_id: Optional[str] = None,
        caller: Optional[RetryingModelCaller] = None,
        sleep: SleepFn = asyncio.sleep,
        round_delay: Optional[float] = None,
    ):
        if service is None:
            from services.remote_llms import default_generation_service
            service = default_generation_service()
        self.service = service
        self.cache = cache if cache is not None else SearchResultCache()
        self.prospects = prospects if prospects is not None else StaticProspectSnapshot()
        self.model_id = model_id or settings.search_model
        self.caller = caller or RetryingModelCaller(service, sleep=sleep)
        self.round_delay = settings.search_round_delay_seconds if round_delay is None else round_delay
        self.first_batch_size = settings.search_first_batch_size
        self.batch_size = settings.search_batch_size
        self.exclusion_window = settings.search_exclusion_window
        self._sleep = sleep

    def ensure_configured(self) -> None:
        self.service.ensure_configured()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Search cache cleared")

    async def search(
        self,
        segment: str,
        region: str,
        max_results: int,
        on_progress: Optional[ProgressCallback] = None,
        on_batch: Optional[BatchCallback] = None,
        coordinates: Optional[Coordinates] = None,
        cancel_signal: Optional[CancelSignal] = None,
    ) -> List[BusinessEntity]:
        segment = (segment or "").strip()
        region = (region or "").strip()
        if not region:
            raise ValueError("region must not be empty")
        if max_results <= 0:
            raise ValueError("max_results must be positive")
        self.ensure_configured()

        progress = on_progress or _noop
        emit = on_batch or _noop

        self.cache.prune()
        cache_key = build_cache_key(segment, region, max_results, coordinates)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f"Cache hit for {cache_key!r} ({len(cached)} entities)")
            progress("Loading results from the instant cache...")
            emit(list(cached))
            return cached

        progress("Syncing saved prospects...")
        prospect_index = await self._load_prospect_index()

        broad = is_broad_search(segment)
        default_category = BROAD_SWEEP_CATEGORY if broad else segment
        progress(f"Starting {'geographic sweep' if broad else 'segment search'}...")

        entities: List[BusinessEntity] = []
        seen_names: Set[str] = set()
        budget = max_rounds(max_results)
        round_number = 0
        cancelled = False

        while len(entities) < max_results and round_number < budget:
            if _is_cancelled(cancel_signal):
                cancelled = True
                progress("Search cancelled.")
                logger.info(f"Search cancelled after {round_number} rounds")
                break

            round_number += 1
            remaining = max_results - len(entities)
            batch_size = round_batch_size(round_number, remaining, self.first_batch_size, self.batch_size)
            exclusion_names = [e.name for e in entities[-self.exclusion_window:]]
            prompt = build_search_prompt(segment, region, batch_size, exclusion_names, coordinates)

            progress(f"Fetching batch {round_number} (found {len(entities)}/{max_results})...")
            try:
                response = await self.caller.call(self.model_id, prompt, broad)
            except ModelInvocationError as e:
                if not entities:
                    raise SearchConnectivityError(
                        "Could not reach the generation service. Check the API key or try again."
                    ) from e
                logger.warning(f"Round {round_number} failed, returning partial results: {e}")
                progress("Finishing with partial results...")
                break

            new_entities = self._ingest(response.text, seen_names, default_category, prospect_index, remaining)
            logger.info(f"Round {round_number}: {len(new_entities)} new entities (batch size {batch_size})")

            if not new_entities:
                if round_number > SATURATION_GRACE_ROUNDS:
                    progress("Local sweep complete.")
                    break
                progress("Still processing... trying alternative routes")
            else:
                entities.extend(new_entities)
                emit(list(new_entities))

            if len(entities) < max_results and round_number < budget:
                await self._sleep(self.round_delay)

        progress(f"Done! {len(entities)} businesses found.")

        if entities and not cancelled:
            self.cache.set(cache_key, entities)

        return entities

    async def search_streaming(
        self,
        segment: str,
        region: str,
        max_results: int,
        coordinates: Optional[Coordinates] = None,
        cancel_signal: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[SearchEvent]:
        """Run `search` and yield its progress and batches as events."""
        cancel_signal = cancel_signal or asyncio.Event()
        queue: asyncio.Queue = asyncio.Queue()

        task = asyncio.create_task(
            self.search(
                segment,
                region,
                max_results,
                on_progress=lambda message: queue.put_nowait(SearchEvent("progress", message=message)),
                on_batch=lambda batch: queue.put_nowait(SearchEvent("batch", entities=batch)),
                coordinates=coordinates,
                cancel_signal=cancel_signal,
            )
        )

        def _finished(done: asyncio.Task) -> None:
            # Consumers may stop early; the outcome is always retrieved here.
            if not done.cancelled() and done.exception() is not None:
                logger.debug(f"Streaming search ended with {done.exception()!r}")
            queue.put_nowait(None)

        task.add_done_callback(_finished)

        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            cancel_signal.set()

        try:
            result = task.result()
        except (SearchConnectivityError, ValueError) as e:
            yield SearchEvent("error", message=str(e))
            return
        yield SearchEvent("done", total=len(result))

    async def _load_prospect_index(self) -> frozenset[str]:
        try:
            saved = await self.prospects.get_all_saved()
        except Exception as e:
            logger.warning(f"Could not load saved prospects, continuing without them: {e}")
            return frozenset()
        return build_prospect_index(saved)

    def _ingest(
        self,
        text: str,
        seen_names: Set[str],
        default_category: str,
        prospect_index: frozenset[str],
        limit: int,
    ) -> List[BusinessEntity]:
        records = repair_json_array(text)
        if not records:
            logger.info("Model answer held no recoverable records")
            return []

        new_entities: List[BusinessEntity] = []
        for record in records:
            if len(new_entities) >= limit:
                break
            entity = normalize_entity(record, seen_names, default_category, prospect_index)
            if entity is not None:
                new_entities.append(entity)

        if not new_entities:
            logger.info(f"All {len(records)} recovered records were duplicates or unnamed")
        return new_entities
