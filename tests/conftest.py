from __future__ import annotations

import asyncio
import datetime as dt
import json
from typing import Any

import pytest

FIXED_NOW = dt.datetime(2024, 3, 1, tzinfo=dt.timezone.utc)


def oracle_payload(**patterns: Any) -> dict[str, Any]:
    market = {
        "image_placement": "center",
        "text_hierarchy": "headline_first",
        "cta_position": "bottom",
        "visual_density": "moderate",
        "background_style": "clean",
        "dominant_colors": ["#FFFFFF", "#111111"],
        "composition_rules": ["Product centred with generous whitespace"],
    }
    market.update(patterns)
    return {
        "market_patterns": market,
        "performance_signals": {"longevity_days": 999, "platform_coverage": ["x"], "frequency_score": 10},
        "brand_alignment": {
            "overrides": {"background_style": "Brand requires clean backgrounds"},
            "adaptations": {"cta_position": ["Bottom CTA", "brand button style"]},
        },
    }


class FakeOracle:
    name = "fake"

    def __init__(self, response: str | None = None, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.response = response if response is not None else json.dumps(oracle_payload())
        self.delay = delay
        self.error = error
        self.contexts: list[dict[str, Any]] = []
        self.active = 0
        self.max_active = 0

    async def infer(self, context: dict[str, Any]) -> str:
        self.contexts.append(context)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return self.response
        finally:
            self.active -= 1


def make_batches() -> list[dict[str, Any]]:
    return [
        {
            "competitor_name": "Glow Cosmetics",
            "platforms": ["Facebook", "instagram"],
            "total_ads": 3,
            "ad_frequency": "High",
            "ads": [
                {"ad_creative_body": "Radiant skin in 7 days", "longevity_days": 10},
                {"ad_creative_body": "Shop the glow set", "longevity_days": 20},
                {"ad_creative_body": "New arrivals"},
            ],
        },
        {
            "competitor_name": "Dewy Labs",
            "platforms": ["facebook"],
            "total_ads": 1,
            "ads": [{"ad_creative_body": "Hydration that lasts", "longevity_days": 30}],
        },
    ]


@pytest.fixture()
def fake_oracle() -> FakeOracle:
    return FakeOracle()
