"""Competitor ad corpus and brand identity inputs consumed by the extractor."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import Field, field_validator

from ._base import _CompatModel


class CompetitorAd(_CompatModel):
    body: str = Field("", alias="ad_creative_body", description="Ad body copy")
    headline: str = Field("", alias="ad_creative_link_title", description="Ad link title")
    platform: Optional[str] = Field(None, description="Platform the ad ran on")
    delivery_start_time: Optional[dt.datetime] = Field(
        None,
        alias="ad_delivery_start_time",
        description="When the ad started delivering; used to derive longevity",
    )
    snapshot_url: Optional[str] = Field(None, alias="ad_snapshot_url")
    longevity_days: Optional[float] = Field(
        None, ge=0, description="Days the ad has been running, when known"
    )

    @field_validator("body", "headline", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def resolved_longevity(self, now: dt.datetime) -> float | None:
        """Known longevity, or whole days since delivery start, or None."""

        if self.longevity_days is not None:
            return float(self.longevity_days)
        if self.delivery_start_time is None:
            return None
        start = self.delivery_start_time
        if start.tzinfo is None:
            start = start.replace(tzinfo=dt.timezone.utc)
        days = (now - start).days
        return float(max(days, 0))


class CompetitorAdBatch(_CompatModel):
    competitor_name: str = Field(..., min_length=1)
    ads: list[CompetitorAd] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    total_ads: int = Field(0, ge=0)
    ad_frequency: str = "Unknown"

    @property
    def is_usable(self) -> bool:
        return bool(self.ads)


class BrandColor(_CompatModel):
    hex: str
    name: Optional[str] = None


class BrandColors(_CompatModel):
    primary: list[BrandColor] = Field(default_factory=list)
    secondary: list[BrandColor] = Field(default_factory=list)
    accent: list[BrandColor] = Field(default_factory=list)

    def all_hex(self) -> list[str]:
        return [c.hex for c in (*self.primary, *self.secondary, *self.accent) if c.hex]


class BrandVisual(_CompatModel):
    colors: BrandColors = Field(default_factory=BrandColors)
    typography: dict[str, Any] = Field(default_factory=dict)
    image_style: Optional[str] = None
    mood: Optional[str] = None


class BrandGuardrails(_CompatModel):
    visual_rules: list[str] = Field(default_factory=list)
    forbidden_topics: list[str] = Field(default_factory=list)


class BrandIdentity(_CompatModel):
    """Caller-side brand identity record for one project."""

    visual: BrandVisual = Field(default_factory=BrandVisual)
    voice: dict[str, Any] = Field(default_factory=dict)
    positioning: dict[str, Any] = Field(default_factory=dict)
    guardrails: BrandGuardrails = Field(default_factory=BrandGuardrails)

    @property
    def market_category(self) -> str | None:
        value = self.positioning.get("market_category")
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
        return None
