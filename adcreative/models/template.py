"""Ad template records: zones, contrast requirement and font hierarchy."""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from ._base import _FrozenRecord, new_id, normalise_choice, utcnow

ContrastLevel = Literal["low", "medium", "high"]
TextRole = Literal["headline", "body", "hook", "cta"]
TemplateType = Literal["static_image", "carousel", "video_thumbnail"]
ZoneBand = Literal["top", "middle", "center", "bottom", "overlay-bottom"]


class ZonePoint(_FrozenRecord):
    """Conceptual anchor in percent of the canvas."""

    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)


class ImageZone(_FrozenRecord):
    id: str = Field(..., min_length=1)
    position: str = "center"
    dimensions: Optional[str] = Field(None, description="Absolute size as WxH")
    width: Optional[str] = None
    height: Optional[str] = None
    aspect_ratio: Optional[str] = None


class TextZone(_FrozenRecord):
    id: str = Field(..., min_length=1)
    type: TextRole
    max_chars: int = Field(..., gt=0)
    position: Union[ZoneBand, ZonePoint, None] = None
    font_size: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        return normalise_choice(value)

    @field_validator("position", mode="before")
    @classmethod
    def _normalise_position(cls, value: Any) -> Any:
        return normalise_choice(value)


class SafeAreas(_FrozenRecord):
    top: int = Field(0, ge=0)
    bottom: int = Field(0, ge=0)
    left: int = Field(0, ge=0)
    right: int = Field(0, ge=0)


class TemplateLayout(_FrozenRecord):
    image_zones: list[ImageZone] = Field(default_factory=list)
    text_zones: list[TextZone] = Field(...)
    required_contrast: ContrastLevel
    cta_position: Optional[str] = None
    safe_areas: Optional[SafeAreas] = None

    @field_validator("required_contrast", mode="before")
    @classmethod
    def _normalise_contrast(cls, value: Any) -> Any:
        return normalise_choice(value)

    @model_validator(mode="after")
    def _unique_text_zone_ids(self) -> "TemplateLayout":
        seen: set[str] = set()
        for zone in self.text_zones:
            if zone.id in seen:
                raise ValueError(f"duplicate text zone id: {zone.id}")
            seen.add(zone.id)
        return self

    def zone_for(self, role: str) -> TextZone | None:
        for zone in self.text_zones:
            if zone.type == role:
                return zone
        return None


class FontSpec(_FrozenRecord):
    size: int = Field(..., ge=0)
    weight: str = "normal"
    family: str = "sans-serif"


class StyleRules(_FrozenRecord):
    font_hierarchy: dict[TextRole, FontSpec] = Field(default_factory=dict)
    color_palette: list[str] = Field(default_factory=list)
    spacing_rules: dict[str, str] = Field(default_factory=dict)


class AdTemplate(_FrozenRecord):
    id: str = Field(default_factory=new_id)
    project_id: str = "system"
    guideline_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    platform: str = Field(..., min_length=1)
    template_type: TemplateType = "static_image"
    layout_json: TemplateLayout
    style_rules_json: StyleRules = Field(default_factory=StyleRules)
    created_at: dt.datetime = Field(default_factory=utcnow)
