"""Template / image compatibility scoring.

Scoring starts at 100 and every rule can only subtract. The verdict is
``score > 60``; issues are advisory and returned in rule order.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from pydantic import BaseModel, ValidationError

from adcreative.errors import InvalidInputError
from adcreative.models import (
    COMPATIBILITY_THRESHOLD,
    AdTemplate,
    CompatibilityResult,
    ImageLayoutMap,
    Rect,
    TemplateLayout,
    TextZone,
    ZonePoint,
)

logger = logging.getLogger(__name__)

CONTRAST_PENALTIES = {("high", "low"): 50, ("medium", "low"): 20}
TEXT_HEAVY_ZONE_COUNT = 2
TEXT_HEAVY_MAX_CHARS = 100
NOISE_PENALTY = 30
AVOID_ZONE_PENALTY = 15
AVOID_ZONE_COVERAGE = 0.25

_THIRD = 1.0 / 3.0
BAND_RECTS: dict[str, Rect] = {
    "top": Rect(x=0.0, y=0.0, width=1.0, height=_THIRD),
    "middle": Rect(x=0.0, y=_THIRD, width=1.0, height=_THIRD),
    "center": Rect(x=0.0, y=_THIRD, width=1.0, height=_THIRD),
    "bottom": Rect(x=0.0, y=2 * _THIRD, width=1.0, height=_THIRD),
    "overlay-bottom": Rect(x=0.0, y=2 * _THIRD, width=1.0, height=_THIRD),
}

TemplateInput = Union[AdTemplate, TemplateLayout, Mapping[str, Any]]
LayoutMapInput = Union[ImageLayoutMap, Mapping[str, Any]]


def _coerce_layout(template: TemplateInput) -> TemplateLayout:
    if isinstance(template, AdTemplate):
        return template.layout_json
    if isinstance(template, TemplateLayout):
        return template
    if isinstance(template, BaseModel):
        template = template.model_dump()
    if not isinstance(template, Mapping):
        raise InvalidInputError("Template must be an object")
    payload = template.get("layout_json", template)
    try:
        return TemplateLayout.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInputError(
            "Template layout is missing required fields",
            detail={"errors": _errors(exc)},
        ) from exc


def _coerce_map(layout_map: LayoutMapInput) -> ImageLayoutMap:
    if isinstance(layout_map, ImageLayoutMap):
        return layout_map
    try:
        return ImageLayoutMap.model_validate(layout_map)
    except ValidationError as exc:
        raise InvalidInputError(
            "Image layout map is missing required fields",
            detail={"errors": _errors(exc)},
        ) from exc


def _errors(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


def is_text_heavy(layout: TemplateLayout) -> bool:
    zones = layout.text_zones
    return len(zones) > TEXT_HEAVY_ZONE_COUNT or any(
        zone.max_chars > TEXT_HEAVY_MAX_CHARS for zone in zones
    )


def zone_collides(zone: TextZone, avoid: Rect) -> bool:
    position = zone.position
    if isinstance(position, ZonePoint):
        return avoid.contains(position.x / 100.0, position.y / 100.0)
    band = BAND_RECTS.get(position or "")
    if band is None or avoid.area <= 0:
        return False
    return band.intersection_area(avoid) >= AVOID_ZONE_COVERAGE * avoid.area


def colliding_zones(layout: TemplateLayout, layout_map: ImageLayoutMap) -> list[str]:
    hits: list[str] = []
    for zone in layout.text_zones:
        if zone.position is None:
            continue
        if any(zone_collides(zone, avoid) for avoid in layout_map.avoid_zones):
            hits.append(zone.id)
    return hits


def validate(template: TemplateInput, layout_map: LayoutMapInput) -> CompatibilityResult:
    """Score how well ``template`` fits the analysed image."""

    layout = _coerce_layout(template)
    image = _coerce_map(layout_map)

    score = 100
    issues: list[str] = []

    def penalise(points: int, issue: str) -> None:
        nonlocal score
        score = max(0, score - points)
        issues.append(issue)

    required = layout.required_contrast
    penalty = CONTRAST_PENALTIES.get((required, image.contrast_level))
    if penalty:
        penalise(
            penalty,
            f"Template requires {required} contrast, but image has "
            f"{image.contrast_level} contrast.",
        )

    if is_text_heavy(layout) and image.visual_noise == "high":
        penalise(
            NOISE_PENALTY,
            "Image has high visual noise, which may reduce legibility for this "
            "text-heavy template.",
        )

    if image.avoid_zones:
        if image.is_normalized:
            hits = colliding_zones(layout, image)
            if hits:
                penalise(
                    AVOID_ZONE_PENALTY,
                    "Text zones overlap areas of the image that should stay clear: "
                    + ", ".join(hits)
                    + ".",
                )
        else:
            logger.info(
                "compatibility.avoid_zones.skipped",
                extra={"reason": "not_normalized", "zones": len(image.avoid_zones)},
            )

    return CompatibilityResult(
        compatible=score > COMPATIBILITY_THRESHOLD,
        score=score,
        issues=issues,
    )


__all__ = ["colliding_zones", "is_text_heavy", "validate", "zone_collides"]
