from __future__ import annotations

import asyncio
import json

import pytest

from adcreative.errors import OracleContractError, OracleUnavailableError
from adcreative.models import CompetitorAdBatch
from adcreative.services.guidelines import GuidelineExtractor
from adcreative.services.history import GuidelineService
from adcreative.services.records import GUIDELINES, JsonRecordStore, MemoryRecordStore
from conftest import FIXED_NOW, FakeOracle, make_batches


def _service(oracle: FakeOracle, store=None) -> GuidelineService:
    extractor = GuidelineExtractor(oracle, clock=lambda: FIXED_NOW)
    return GuidelineService(store or MemoryRecordStore(), extractor)


def _batches() -> list[CompetitorAdBatch]:
    return [CompetitorAdBatch.model_validate(item) for item in make_batches()]


def test_regeneration_is_serialized_per_project() -> None:
    oracle = FakeOracle(delay=0.02)
    service = _service(oracle)

    async def run_both():
        return await asyncio.gather(
            service.regenerate("proj-1", _batches()),
            service.regenerate("proj-1", _batches()),
        )

    first, second = asyncio.run(run_both())

    assert oracle.max_active == 1
    history = service.history("proj-1")
    assert [g.id for g in history] == [second.id, first.id]
    assert service.active("proj-1").id == second.id
    assert service._locks == {}


def test_different_projects_run_concurrently() -> None:
    oracle = FakeOracle(delay=0.02)
    service = _service(oracle)

    async def run_both():
        await asyncio.gather(
            service.regenerate("proj-1", _batches()),
            service.regenerate("proj-2", _batches()),
        )

    asyncio.run(run_both())

    assert oracle.max_active == 2
    assert len(service.history("proj-1")) == 1
    assert len(service.history("proj-2")) == 1


def test_failed_regeneration_keeps_previous_active() -> None:
    oracle = FakeOracle()
    service = _service(oracle)
    previous = asyncio.run(service.regenerate("proj-1", _batches()))

    oracle.error = OracleUnavailableError("down")
    with pytest.raises(OracleUnavailableError):
        asyncio.run(service.regenerate("proj-1", _batches()))

    oracle.error = None
    oracle.response = "not json"
    with pytest.raises(OracleContractError):
        asyncio.run(service.regenerate("proj-1", _batches()))

    assert service.active("proj-1").id == previous.id
    assert len(service.history("proj-1")) == 1
    assert service._locks == {} and service._lock_users == {}


def test_active_is_none_without_history() -> None:
    service = GuidelineService(MemoryRecordStore())
    assert service.active("proj-1") is None
    assert service.history("proj-1") == []


def test_regenerate_without_oracle_is_unavailable() -> None:
    service = GuidelineService(MemoryRecordStore())
    with pytest.raises(OracleUnavailableError):
        asyncio.run(service.regenerate("proj-1", _batches()))


def test_json_store_persists_history(tmp_path) -> None:
    store = JsonRecordStore(tmp_path)
    service = _service(FakeOracle(), store)
    guideline = asyncio.run(service.regenerate("proj-1", _batches()))

    reloaded = GuidelineService(JsonRecordStore(tmp_path))
    assert reloaded.active("proj-1") == guideline
    assert reloaded.find("proj-1", guideline.id) == guideline
    assert reloaded.find("proj-2", guideline.id) is None

    with (tmp_path / f"{GUIDELINES}.json").open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    assert payload[0]["project_id"] == "proj-1"
