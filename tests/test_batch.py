from __future__ import annotations

import asyncio

from statspace.analytics.filters import MatchFilter
from statspace.models import StatVector
from statspace.services.batch import BatchRequest, BatchResponse, RosterBatchRunner, compute_roster


def _fake_compute(entity: str, request: BatchRequest) -> StatVector:
    return StatVector(total_goals=len(entity), matches_played=len(request.match_filter.seasons))


def test_runner_matches_inline_computation():
    request = BatchRequest(entities=("Salah", "Afsha", "Salah", "", "Taher"), match_filter=MatchFilter(seasons=("2023-24",)))
    runner = RosterBatchRunner(_fake_compute, chunk_size=2)

    response = asyncio.run(runner.run(request))

    assert response is not None
    assert response.stats == compute_roster(request, _fake_compute)
    assert list(response.stats) == ["Salah", "Afsha", "Taher"]
    assert response.signature == request.signature()
    assert runner.accept(response)


def test_superseded_submission_returns_none():
    runner = RosterBatchRunner(_fake_compute, chunk_size=1)
    older = BatchRequest(entities=("Salah", "Afsha"))
    newer = BatchRequest(entities=("Taher",), team_scope=("Ahly",))

    async def scenario():
        first = runner.submit(older)
        second = runner.submit(newer)
        return await first, await second

    stale, fresh = asyncio.run(scenario())

    assert stale is None
    assert fresh is not None
    assert fresh.generation == 2
    assert runner.accept(fresh)
    assert not runner.accept(stale)


def test_run_superseded_between_chunks():
    runner = RosterBatchRunner(_fake_compute, chunk_size=1)
    older = BatchRequest(entities=("Salah", "Afsha", "Taher"))
    newer = BatchRequest(entities=("Maaloul",))

    async def scenario():
        first = asyncio.create_task(runner.run(older))
        await asyncio.sleep(0)
        second = await runner.run(newer)
        return await first, second

    stale, fresh = asyncio.run(scenario())
    assert stale is None
    assert fresh is not None and list(fresh.stats) == ["Maaloul"]


def test_late_response_is_rejected():
    runner = RosterBatchRunner(_fake_compute)
    request = BatchRequest(entities=("Salah",))

    async def scenario():
        earlier = await runner.run(request)
        await runner.run(BatchRequest(entities=("Salah",), match_filter=MatchFilter(results=("W",))))
        return earlier

    earlier = asyncio.run(scenario())
    assert earlier is not None
    assert not runner.accept(earlier)
    forged = BatchResponse(signature=request.signature(), generation=runner.generation, stats={})
    assert not runner.accept(forged)


def test_request_coerces_sequences():
    request = BatchRequest(entities=["Salah"], team_scope="Ahly")
    assert request.entities == ("Salah",)
    assert request.team_scope == ("Ahly",)
    assert request.signature().team_scope == ("Ahly",)
