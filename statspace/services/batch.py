"""
Chunked roster computation that yields to the event loop between chunks.

Every submitted request bumps a generation counter. A run that notices a newer
generation stops early, and callers use :meth:`RosterBatchRunner.accept` to
drop any response that arrives after it was superseded.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..analytics.filters import FilterSignature, MatchFilter
from ..models import StatVector

LOGGER = logging.getLogger(__name__)

ROSTER_VIEW = "roster"


@dataclass(frozen=True)
class BatchRequest:
    entities: Tuple[str, ...]
    match_filter: MatchFilter = field(default_factory=MatchFilter)
    team_scope: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", tuple(self.entities))
        scope = (self.team_scope,) if isinstance(self.team_scope, str) else tuple(self.team_scope or ())
        object.__setattr__(self, "team_scope", scope)

    def signature(self) -> FilterSignature:
        return FilterSignature.build(ROSTER_VIEW, self.match_filter, self.team_scope)

    def unique_entities(self) -> List[str]:
        return [entity for entity in dict.fromkeys(self.entities) if entity]


@dataclass(frozen=True)
class BatchResponse:
    signature: FilterSignature
    generation: int
    stats: Dict[str, StatVector]


RosterCompute = Callable[[str, BatchRequest], StatVector]


def compute_roster(request: BatchRequest, compute: RosterCompute) -> Dict[str, StatVector]:
    """
    Compute every entity of ``request`` inline.
    """
    return {entity: compute(entity, request) for entity in request.unique_entities()}


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class RosterBatchRunner:
    """
    Run roster computations in chunks on the event loop.
    """

    def __init__(self, compute: RosterCompute, *, chunk_size: int = 25):
        self.compute = compute
        self.chunk_size = max(1, chunk_size)
        self.generation = 0
        self._latest_signature: Optional[FilterSignature] = None

    def _advance(self, request: BatchRequest) -> int:
        self.generation += 1
        self._latest_signature = request.signature()
        return self.generation

    def submit(self, request: BatchRequest) -> "asyncio.Task[Optional[BatchResponse]]":
        """
        Schedule ``request`` on the running loop, superseding earlier submissions.
        """
        generation = self._advance(request)
        return asyncio.create_task(self._run(request, generation))

    async def run(self, request: BatchRequest) -> Optional[BatchResponse]:
        generation = self._advance(request)
        return await self._run(request, generation)

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    async def _run(self, request: BatchRequest, generation: int) -> Optional[BatchResponse]:
        signature = request.signature()
        stats: Dict[str, StatVector] = {}
        for chunk in _chunks(request.unique_entities(), self.chunk_size):
            if not self.is_current(generation):
                LOGGER.debug("Roster run %s superseded by %s", generation, self.generation)
                return None
            for entity in chunk:
                stats[entity] = self.compute(entity, request)
            await asyncio.sleep(0)
        if not self.is_current(generation):
            LOGGER.debug("Roster run %s finished after being superseded", generation)
            return None
        return BatchResponse(signature=signature, generation=generation, stats=stats)

    def accept(self, response: Optional[BatchResponse]) -> bool:
        """
        True only for a response of the latest request.
        """
        if response is None:
            return False
        return response.generation == self.generation and response.signature == self._latest_signature
