"""Visual guideline records distilled from competitor ads and brand identity."""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import Field, field_validator

from ._base import _CompatModel, _FrozenRecord, new_id, normalise_choice, utcnow

ImagePlacement = Literal["center", "left", "right"]
TextHierarchy = Literal["headline_first", "support_first"]
CtaPosition = Literal["bottom", "center", "overlay"]
VisualDensity = Literal["minimal", "moderate", "busy"]
BackgroundStyle = Literal["clean", "lifestyle", "gradient"]

DEFAULT_CATEGORY = "general"


class MarketPatterns(_FrozenRecord):
    image_placement: ImagePlacement
    text_hierarchy: TextHierarchy
    cta_position: CtaPosition
    visual_density: VisualDensity
    background_style: BackgroundStyle
    dominant_colors: list[str] = Field(default_factory=list)
    composition_rules: list[str] = Field(default_factory=list)

    @field_validator(
        "image_placement",
        "text_hierarchy",
        "cta_position",
        "visual_density",
        "background_style",
        mode="before",
    )
    @classmethod
    def _normalise(cls, value: Any) -> Any:
        return normalise_choice(value)

    @field_validator("dominant_colors", "composition_rules", mode="before")
    @classmethod
    def _clean_strings(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return value


class PerformanceSignals(_FrozenRecord):
    longevity_days: float = Field(0.0, ge=0)
    platform_coverage: list[str] = Field(default_factory=list)
    frequency_score: int = Field(0, ge=0, le=10)


class BrandAlignment(_FrozenRecord):
    overrides: dict[str, str] = Field(default_factory=dict)
    adaptations: dict[str, str] = Field(default_factory=dict)

    @field_validator("overrides", "adaptations", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        cleaned: dict[str, str] = {}
        for key, item in value.items():
            if item is None:
                continue
            if isinstance(item, (list, tuple)):
                cleaned[str(key)] = ", ".join(str(part) for part in item)
            else:
                cleaned[str(key)] = str(item)
        return cleaned


class OracleGuidelinePayload(_CompatModel):
    """Shape the reasoning oracle must answer with."""

    market_patterns: MarketPatterns
    performance_signals: dict[str, Any] = Field(default_factory=dict)
    brand_alignment: BrandAlignment = Field(default_factory=BrandAlignment)


class VisualGuideline(_FrozenRecord):
    id: str = Field(default_factory=new_id)
    project_id: str
    category: str = Field(DEFAULT_CATEGORY, min_length=1)
    market_patterns: MarketPatterns
    performance_signals: PerformanceSignals
    brand_alignment: BrandAlignment = Field(default_factory=BrandAlignment)
    created_at: dt.datetime = Field(default_factory=utcnow)
