from typing import Iterable, List, Protocol

from models.domain import SavedProspect


class ProspectSnapshotProvider(Protocol):
    async def get_all_saved(self) -> List[SavedProspect]:
        ...


class StaticProspectSnapshot:
    """Snapshot backed by a list the caller already holds."""

    def __init__(self, prospects: Iterable[SavedProspect] = ()):
        self._prospects = list(prospects)

    async def get_all_saved(self) -> List[SavedProspect]:
        return list(self._prospects)
