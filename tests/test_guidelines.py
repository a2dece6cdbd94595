from __future__ import annotations

import asyncio
import datetime as dt
import json

import pytest

from adcreative.errors import InsufficientDataError, OracleContractError, OracleUnavailableError
from adcreative.models import BrandIdentity, CompetitorAdBatch
from adcreative.services.guidelines import (
    GuidelineExtractor,
    compute_performance_signals,
    frequency_score,
    infer_category,
)
from conftest import FIXED_NOW, FakeOracle, make_batches, oracle_payload


def _batches(raw=None) -> list[CompetitorAdBatch]:
    return [CompetitorAdBatch.model_validate(item) for item in (raw or make_batches())]


def _extractor(oracle, **kwargs) -> GuidelineExtractor:
    return GuidelineExtractor(oracle, clock=lambda: FIXED_NOW, **kwargs)


def test_frequency_score_is_twice_competitors_capped_at_ten() -> None:
    for count in range(0, 12):
        assert frequency_score(count) == min(10, 2 * count)
    assert frequency_score(0) == 0
    assert frequency_score(50) == 10


def test_performance_signals_use_defined_longevity_only() -> None:
    signals = compute_performance_signals(_batches(), FIXED_NOW)

    assert signals.longevity_days == 20
    assert signals.frequency_score == 4
    assert signals.platform_coverage == ["facebook", "instagram"]


def test_performance_signals_default_longevity_to_zero() -> None:
    raw = [{"competitor_name": "Acme", "ads": [{"ad_creative_body": "Hi"}, {"ad_creative_body": "Yo"}]}]
    signals = compute_performance_signals(_batches(raw), FIXED_NOW)

    assert signals.longevity_days == 0.0
    assert signals.frequency_score == 2


def test_longevity_derived_from_delivery_start() -> None:
    raw = [
        {
            "competitor_name": "Acme",
            "ads": [{"ad_creative_body": "Hi", "ad_delivery_start_time": "2024-02-20T00:00:00Z"}],
        }
    ]
    signals = compute_performance_signals(_batches(raw), FIXED_NOW)
    assert signals.longevity_days == 10


def test_competitors_are_distinct_by_trimmed_casefolded_name() -> None:
    raw = [
        {"competitor_name": "Acme", "ads": [{"ad_creative_body": "a"}]},
        {"competitor_name": "  ACME ", "ads": [{"ad_creative_body": "b"}]},
    ]
    assert compute_performance_signals(_batches(raw), FIXED_NOW).frequency_score == 2


def test_extract_overwrites_oracle_signals(fake_oracle: FakeOracle) -> None:
    guideline = asyncio.run(_extractor(fake_oracle).extract("proj-1", _batches()))

    assert guideline.project_id == "proj-1"
    assert guideline.performance_signals.longevity_days == 20
    assert guideline.performance_signals.frequency_score == 4
    assert guideline.performance_signals.platform_coverage == ["facebook", "instagram"]
    assert guideline.market_patterns.image_placement == "center"
    assert guideline.brand_alignment.adaptations["cta_position"] == "Bottom CTA, brand button style"
    assert guideline.created_at == FIXED_NOW


def test_extract_accepts_fenced_json_with_prose() -> None:
    body = json.dumps(oracle_payload(image_placement="Left", visual_density=" BUSY "))
    oracle = FakeOracle(f"Here is the analysis:\n```json\n{body}\n```\nLet me know!")

    guideline = asyncio.run(_extractor(oracle).extract("proj-1", _batches()))

    assert guideline.market_patterns.image_placement == "left"
    assert guideline.market_patterns.visual_density == "busy"


def test_extract_skips_empty_batches_and_requires_one_usable() -> None:
    oracle = FakeOracle()
    raw = [{"competitor_name": "Empty Co", "ads": []}]

    with pytest.raises(InsufficientDataError):
        asyncio.run(_extractor(oracle).extract("proj-1", _batches(raw)))
    with pytest.raises(InsufficientDataError):
        asyncio.run(_extractor(oracle).extract("proj-1", []))
    assert oracle.contexts == []

    guideline = asyncio.run(_extractor(oracle).extract("proj-1", _batches(make_batches() + raw)))
    assert guideline.performance_signals.frequency_score == 4


def test_extract_bounds_samples_per_competitor() -> None:
    oracle = FakeOracle()
    raw = [
        {
            "competitor_name": "Many Ads",
            "ads": [{"ad_creative_body": f"ad {i}"} for i in range(15)],
        }
    ]

    asyncio.run(_extractor(oracle, max_samples=4).extract("proj-1", _batches(raw)))

    data = oracle.contexts[0]["data"]
    assert len(data["competitor_ads"][0]["sample_ads"]) == 4
    assert "market_patterns" in oracle.contexts[0]["instructions"]
    assert data["brand_identity"]["image_style"] == "Not specified"


def test_extract_rejects_non_json_response() -> None:
    oracle = FakeOracle("I could not analyse these ads.")

    with pytest.raises(OracleContractError) as excinfo:
        asyncio.run(_extractor(oracle).extract("proj-1", _batches()))
    assert excinfo.value.raw_response == "I could not analyse these ads."


def test_extract_rejects_unknown_enumeration() -> None:
    oracle = FakeOracle(json.dumps(oracle_payload(cta_position="diagonal")))

    with pytest.raises(OracleContractError) as excinfo:
        asyncio.run(_extractor(oracle).extract("proj-1", _batches()))
    locs = [err["loc"] for err in excinfo.value.detail["errors"]]
    assert "market_patterns.cta_position" in locs


def test_extract_times_out_as_unavailable() -> None:
    oracle = FakeOracle(delay=1.0)

    with pytest.raises(OracleUnavailableError) as excinfo:
        asyncio.run(_extractor(oracle, timeout=0.01).extract("proj-1", _batches()))
    assert excinfo.value.retryable is True


def test_category_prefers_brand_market_category() -> None:
    brand = BrandIdentity.model_validate({"positioning": {"market_category": " Skincare "}})
    assert infer_category(_batches(), brand) == "skincare"


def test_category_from_keywords_then_general() -> None:
    assert infer_category(_batches(), None) == "cosmetics"

    raw = [{"competitor_name": "Iron Gym", "ads": [{"ad_creative_body": "Join our fitness club"}]}]
    assert infer_category(_batches(raw), BrandIdentity()) == "fitness"

    raw = [{"competitor_name": "Acme", "ads": [{"ad_creative_body": "Hello"}]}]
    assert infer_category(_batches(raw), None) == "general"


def test_resolved_longevity_clamps_future_start() -> None:
    batch = CompetitorAdBatch.model_validate(
        {
            "competitor_name": "Acme",
            "ads": [{"ad_delivery_start_time": (FIXED_NOW + dt.timedelta(days=3)).isoformat()}],
        }
    )
    assert batch.ads[0].resolved_longevity(FIXED_NOW) == 0
