"""Perceptual analysis of a candidate image and the compatibility verdict."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from ._base import _CompatModel, _FrozenRecord, normalise_choice

Level = Literal["low", "medium", "high"]
CoordinateSpace = Literal["normalized", "pixel"]

COMPATIBILITY_THRESHOLD = 60


class Rect(_FrozenRecord):
    x: float = Field(..., ge=0)
    y: float = Field(..., ge=0)
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_unit(self) -> bool:
        eps = 1e-6
        return self.x + self.width <= 1 + eps and self.y + self.height <= 1 + eps

    def intersection_area(self, other: "Rect") -> float:
        dx = min(self.x + self.width, other.x + other.width) - max(self.x, other.x)
        dy = min(self.y + self.height, other.y + other.height) - max(self.y, other.y)
        if dx <= 0 or dy <= 0:
            return 0.0
        return dx * dy

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


class ImageLayoutMap(_CompatModel):
    contrast_level: Level
    visual_noise: Level
    avoid_zones: list[Rect] = Field(...)
    coordinate_space: CoordinateSpace = "normalized"

    @field_validator("contrast_level", "visual_noise", "coordinate_space", mode="before")
    @classmethod
    def _normalise(cls, value: Any) -> Any:
        return normalise_choice(value)

    @property
    def is_normalized(self) -> bool:
        if self.coordinate_space != "normalized":
            return False
        return all(zone.is_unit for zone in self.avoid_zones)


class CompatibilityResult(_FrozenRecord):
    compatible: bool
    score: int = Field(..., ge=0, le=100)
    issues: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _verdict_follows_score(self) -> "CompatibilityResult":
        if self.compatible != (self.score > COMPATIBILITY_THRESHOLD):
            raise ValueError("compatible must equal score > 60")
        return self
