"""
Facade combining the tables, their indices and the result cache.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Union

from ..analytics.aggregation import EMPTY_STATS, compute_stats
from ..analytics.filters import FilterSignature, MatchFilter, candidate_match_ids
from ..analytics.goalkeepers import (
    EMPTY_GOALKEEPER_STATS,
    GroupedGoalkeeperStats,
    ScorerRecord,
    compute_goalkeeper_grouped,
    compute_goalkeeper_stats,
    scorers_against_goalkeeper,
)
from ..analytics.grouping import GroupDimension, GroupedStats, compute_grouped, resolve_dimension
from ..cache import DataCache
from ..config import EngineSettings, load_competition_priority
from ..indexes.event_index import IndexSet, build_indices
from ..models import EventTables, GoalkeeperStats, StatVector
from .batch import BatchRequest, BatchResponse, RosterBatchRunner, compute_roster
from .result_cache import ResultCache

LOGGER = logging.getLogger(__name__)

TeamScope = Optional[Union[str, Iterable[str]]]


class StatsEngine:
    """
    Serve cached player and goalkeeper statistics over one snapshot of the tables.

    ``refresh`` replaces the snapshot wholesale: the new indices are built
    before they are swapped in, then the previous indices are disposed and the
    result cache is cleared. Loading the first snapshot at construction keeps
    the persistent tier, so entries written by an earlier process stay readable.
    """

    def __init__(
        self,
        tables: Optional[EventTables] = None,
        *,
        cache: Optional[ResultCache] = None,
        settings: Optional[EngineSettings] = None,
        competition_priority: Optional[Sequence[str]] = None,
    ):
        self.settings = settings or EngineSettings()
        if cache is None:
            cache = ResultCache(
                ttl_seconds=self.settings.cache_ttl_seconds,
                max_memory_items=self.settings.memory_cache_max_items,
                schema_version=self.settings.schema_version,
            )
        self.cache = cache
        if competition_priority is None:
            competition_priority = load_competition_priority(Path(self.settings.competition_config))
        self.competition_priority = tuple(competition_priority)
        self.tables: Optional[EventTables] = None
        self.indices: Optional[IndexSet] = None
        self.batch = RosterBatchRunner(self._roster_entry, chunk_size=self.settings.batch_chunk_size)
        if tables is not None:
            self._swap(tables)

    @classmethod
    def from_settings(
        cls, tables: Optional[EventTables] = None, settings: Optional[EngineSettings] = None
    ) -> "StatsEngine":
        """
        Build an engine whose result cache also persists to ``settings.cache_dir``.
        """
        settings = settings or EngineSettings.from_env()
        cache = ResultCache(
            DataCache(settings.cache_dir),
            ttl_seconds=settings.cache_ttl_seconds,
            max_memory_items=settings.memory_cache_max_items,
            schema_version=settings.schema_version,
        )
        return cls(tables, cache=cache, settings=settings)

    # ------------------------------------------------------------ lifecycle

    def _swap(self, tables: EventTables) -> IndexSet:
        indices = build_indices(tables)
        previous = self.indices
        self.tables, self.indices = tables, indices
        if previous is not None:
            previous.dispose()
        return indices

    def refresh(self, tables: EventTables) -> IndexSet:
        indices = self._swap(tables)
        self.cache.clear()
        LOGGER.info("Refreshed statistics engine with %s matches", len(tables.matches))
        return indices

    # ---------------------------------------------------------------- views

    def candidate_match_ids(self, match_filter: Optional[MatchFilter] = None) -> FrozenSet[str]:
        return candidate_match_ids(self.tables, match_filter, self.indices)

    def players(self) -> List[str]:
        if self.indices is None:
            return []
        return sorted(self.indices.lineup_by_entity.keys() | self.indices.actions_by_entity.keys())

    def goalkeepers(self) -> List[str]:
        if self.indices is None:
            return []
        return sorted(self.indices.keepers_by_entity)

    def player_stats(
        self,
        player: str,
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> StatVector:
        if not player:
            return EMPTY_STATS
        signature = FilterSignature.build("player", match_filter, team_scope)
        return self.cache.get_or_compute(
            player,
            signature,
            lambda: compute_stats(
                player, signature.team_scope, self.candidate_match_ids(match_filter), self.tables, self.indices
            ),
        )

    def player_stats_by(
        self,
        player: str,
        dimension: Union[str, GroupDimension],
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> GroupedStats:
        resolved = resolve_dimension(dimension)
        if not player:
            return []
        signature = FilterSignature.build(f"player_by_{resolved.value}", match_filter, team_scope)
        return self.cache.get_or_compute(
            player,
            signature,
            lambda: compute_grouped(
                player,
                resolved,
                signature.team_scope,
                self.candidate_match_ids(match_filter),
                self.tables,
                self.indices,
                self.competition_priority,
            ),
        )

    def goalkeeper_stats(
        self,
        goalkeeper: str,
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> GoalkeeperStats:
        if not goalkeeper:
            return EMPTY_GOALKEEPER_STATS
        signature = FilterSignature.build("goalkeeper", match_filter, team_scope)
        return self.cache.get_or_compute(
            goalkeeper,
            signature,
            lambda: compute_goalkeeper_stats(
                goalkeeper, signature.team_scope, self.candidate_match_ids(match_filter), self.tables, self.indices
            ),
        )

    def scorers_against(
        self,
        goalkeeper: str,
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> List[ScorerRecord]:
        if not goalkeeper:
            return []
        signature = FilterSignature.build("scorers_against", match_filter, team_scope)
        return self.cache.get_or_compute(
            goalkeeper,
            signature,
            lambda: scorers_against_goalkeeper(
                goalkeeper, signature.team_scope, self.candidate_match_ids(match_filter), self.tables, self.indices
            ),
        )

    def goalkeeper_stats_by(
        self,
        goalkeeper: str,
        dimension: Union[str, GroupDimension],
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> GroupedGoalkeeperStats:
        resolved = resolve_dimension(dimension)
        if not goalkeeper:
            return []
        signature = FilterSignature.build(f"goalkeeper_by_{resolved.value}", match_filter, team_scope)
        return self.cache.get_or_compute(
            goalkeeper,
            signature,
            lambda: compute_goalkeeper_grouped(
                goalkeeper,
                resolved,
                signature.team_scope,
                self.candidate_match_ids(match_filter),
                self.tables,
                self.indices,
                self.competition_priority,
            ),
        )

    # --------------------------------------------------------------- roster

    def _roster_entry(self, player: str, request: BatchRequest) -> StatVector:
        return self.player_stats(player, request.match_filter, request.team_scope)

    def _roster_request(
        self,
        players: Optional[Iterable[str]],
        match_filter: Optional[MatchFilter],
        team_scope: TeamScope,
    ) -> BatchRequest:
        return BatchRequest(
            entities=tuple(self.players() if players is None else players),
            match_filter=match_filter or MatchFilter(),
            team_scope=team_scope or (),
        )

    def roster_stats(
        self,
        players: Optional[Iterable[str]] = None,
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> Dict[str, StatVector]:
        """
        Stat vectors for every listed player (all players by default), computed inline.
        """
        return compute_roster(self._roster_request(players, match_filter, team_scope), self._roster_entry)

    async def roster_stats_async(
        self,
        players: Optional[Iterable[str]] = None,
        match_filter: Optional[MatchFilter] = None,
        team_scope: TeamScope = None,
    ) -> Optional[BatchResponse]:
        """
        Chunked variant of :meth:`roster_stats`; returns None when superseded by a later call.
        """
        return await self.batch.run(self._roster_request(players, match_filter, team_scope))
