"""Template catalog: built-in layouts, user templates and guideline derivation."""

from __future__ import annotations

import logging
import math
import re
import threading
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from adcreative.errors import InvalidInputError, TemplateConflictError, TemplateNotFoundError
from adcreative.models import (
    AdTemplate,
    FontSpec,
    ImageLayoutMap,
    ImageZone,
    SafeAreas,
    StyleRules,
    TemplateLayout,
    TextZone,
    VisualGuideline,
)
from adcreative.services.records import TEMPLATES, MemoryRecordStore, RecordStore
from adcreative.templates.layouts import (
    BOTTOM_BANNER,
    CLEAN_OVERLAY,
    MINIMAL_HEADLINE,
    load_system_templates,
)

logger = logging.getLogger(__name__)

DEFAULT_CANVAS = (1200, 628)

PLATFORM_DIMENSIONS: dict[str, dict[str, tuple[int, int]]] = {
    "meta": {
        "static_image": (1200, 628),
        "carousel": (1080, 1080),
        "video_thumbnail": (1200, 675),
    },
    "instagram": {
        "static_image": (1080, 1080),
        "carousel": (1080, 1080),
        "video_thumbnail": (1080, 1920),
    },
    "facebook": {
        "static_image": (1200, 628),
        "carousel": (1080, 1080),
        "video_thumbnail": (1200, 675),
    },
    "google": {
        "static_image": (1200, 628),
        "carousel": (1080, 1080),
        "video_thumbnail": (1200, 675),
    },
    "tiktok": {
        "static_image": (1080, 1920),
        "carousel": (1080, 1920),
        "video_thumbnail": (1080, 1920),
    },
}

SAFE_AREA_RATIO = {"meta": 0.05, "instagram": 0.05, "facebook": 0.05, "google": 0.08, "tiktok": 0.10}
DEFAULT_SAFE_AREA_RATIO = 0.05

CHAR_LIMITS = {"headline": 40, "body": 125, "hook": 30, "cta": 20}
CTA_BANDS = {"bottom": "bottom", "center": "center", "overlay": "overlay-bottom"}

FONT_HIERARCHY = {
    "hook": FontSpec(size=20, weight="semibold"),
    "headline": FontSpec(size=48, weight="bold"),
    "body": FontSpec(size=24, weight="normal"),
    "cta": FontSpec(size=18, weight="bold"),
}
FONT_SIZE_LABELS = {"hook": "small", "headline": "large", "body": "medium", "cta": "medium"}

SPACING_RULES = {
    "minimal": {"padding": "large", "gap": "large", "margin": "large"},
    "moderate": {"padding": "medium", "gap": "medium", "margin": "medium"},
    "busy": {"padding": "small", "gap": "small", "margin": "small"},
}

URGENT_ANGLES = {"urgency", "offer"}

_HEX_RE = re.compile(r"#(?:[0-9a-fA-F]{3}){1,2}\b")


def canvas_for(platform: str, template_type: str) -> tuple[int, int]:
    return PLATFORM_DIMENSIONS.get(platform.strip().lower(), {}).get(template_type, DEFAULT_CANVAS)


def safe_areas_for(platform: str, width: int, height: int) -> SafeAreas:
    ratio = SAFE_AREA_RATIO.get(platform.strip().lower(), DEFAULT_SAFE_AREA_RATIO)
    return SafeAreas(
        top=math.floor(height * ratio),
        bottom=math.floor(height * ratio),
        left=math.floor(width * ratio),
        right=math.floor(width * ratio),
    )


def _image_zones(placement: str, width: int, height: int, template_type: str) -> list[ImageZone]:
    aspect = f"{width}:{height}"
    if template_type == "carousel":
        return [
            ImageZone(
                id=f"image-zone-{index}",
                position="center",
                dimensions=f"{width}x{height}",
                aspect_ratio=aspect,
            )
            for index in range(1, 4)
        ]
    if placement in {"left", "right"}:
        return [
            ImageZone(
                id="image-zone-1",
                position=placement,
                dimensions=f"{math.floor(width * 0.6)}x{height}",
                width="60%",
                height="100%",
                aspect_ratio=aspect,
            )
        ]
    return [
        ImageZone(
            id="image-zone-1",
            position="center",
            dimensions=f"{width}x{height}",
            width="100%",
            height="100%",
            aspect_ratio=aspect,
        )
    ]


def _text_zone(role: str, position: str) -> TextZone:
    return TextZone(
        id=f"{role}-zone",
        type=role,
        max_chars=CHAR_LIMITS[role],
        position=position,
        font_size=FONT_SIZE_LABELS[role],
    )


def _text_zones(density: str, hierarchy: str, cta_position: str) -> list[TextZone]:
    zones: list[TextZone] = []
    if density == "busy":
        zones.append(_text_zone("hook", "top"))

    with_body = density != "minimal"
    if with_body and hierarchy == "support_first":
        zones.append(_text_zone("body", "top"))
        zones.append(_text_zone("headline", "middle"))
    else:
        zones.append(_text_zone("headline", "top"))
        if with_body:
            zones.append(_text_zone("body", "middle"))

    zones.append(_text_zone("cta", CTA_BANDS.get(cta_position, "bottom")))
    return zones


def _required_contrast(background: str, density: str) -> str:
    if background == "lifestyle" or density == "busy":
        return "high"
    if background == "gradient":
        return "low"
    return "medium"


def _palette(guideline: VisualGuideline) -> list[str]:
    brand_colors = guideline.brand_alignment.overrides.get("colors")
    if brand_colors:
        found = _HEX_RE.findall(brand_colors)
        if found:
            return found
    return list(guideline.market_patterns.dominant_colors)


def derive_template(
    guideline: VisualGuideline,
    *,
    name: Optional[str] = None,
    platform: str = "meta",
    template_type: str = "static_image",
) -> AdTemplate:
    """Build an executable template from a guideline without registering it."""

    patterns = guideline.market_patterns
    platform_key = platform.strip().lower() or "meta"
    width, height = canvas_for(platform_key, template_type)

    layout = TemplateLayout(
        image_zones=_image_zones(patterns.image_placement, width, height, template_type),
        text_zones=_text_zones(patterns.visual_density, patterns.text_hierarchy, patterns.cta_position),
        required_contrast=_required_contrast(patterns.background_style, patterns.visual_density),
        cta_position=patterns.cta_position,
        safe_areas=safe_areas_for(platform_key, width, height),
    )
    roles = {zone.type for zone in layout.text_zones}
    style = StyleRules(
        font_hierarchy={role: spec for role, spec in FONT_HIERARCHY.items() if role in roles},
        color_palette=_palette(guideline),
        spacing_rules=SPACING_RULES.get(patterns.visual_density, SPACING_RULES["moderate"]),
    )
    return AdTemplate(
        project_id=guideline.project_id,
        guideline_id=guideline.id,
        name=name or f"{guideline.category.title()} {platform_key} {template_type}",
        platform=platform_key,
        template_type=template_type,
        layout_json=layout,
        style_rules_json=style,
    )


class TemplateCatalog:
    """Built-in templates plus an append-only set of user and derived templates."""

    def __init__(self, store: Optional[RecordStore] = None) -> None:
        self.store = store if store is not None else MemoryRecordStore()
        self._system = load_system_templates()
        self._lock = threading.Lock()

    @property
    def system_templates(self) -> dict[str, AdTemplate]:
        return dict(self._system)

    def _user_templates(self) -> list[AdTemplate]:
        return [AdTemplate.model_validate(record) for record in self.store.list_all(TEMPLATES)]

    def get(self, template_id: str) -> AdTemplate:
        if template_id in self._system:
            return self._system[template_id]
        for template in self._user_templates():
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(
            f"Template '{template_id}' not found", detail={"template_id": template_id}
        )

    def list_for_platform(self, platform: Optional[str] = None) -> list[AdTemplate]:
        """User templates newest first, then the built-ins."""

        wanted = platform.strip().lower() if platform else None
        templates = self._user_templates() + sorted(
            self._system.values(), key=lambda t: t.created_at, reverse=True
        )
        if wanted is None:
            return templates
        return [t for t in templates if t.platform.strip().lower() == wanted]

    def add(self, template: AdTemplate | Mapping[str, Any]) -> AdTemplate:
        if not isinstance(template, AdTemplate):
            try:
                template = AdTemplate.model_validate(template)
            except ValidationError as exc:
                raise InvalidInputError(
                    "Template is missing required fields",
                    detail={"errors": [
                        {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
                        for err in exc.errors()
                    ]},
                ) from exc

        with self._lock:
            exists = template.id in self._system or any(
                existing.id == template.id for existing in self._user_templates()
            )
            if exists:
                raise TemplateConflictError(
                    f"Template '{template.id}' already exists",
                    detail={"template_id": template.id},
                )
            self.store.insert(TEMPLATES, template.model_dump(mode="json"))

        logger.info(
            "catalog.template.added",
            extra={"template_id": template.id, "project_id": template.project_id},
        )
        return template

    def derive_from_guideline(
        self,
        guideline: VisualGuideline,
        *,
        name: Optional[str] = None,
        platform: str = "meta",
        template_type: str = "static_image",
    ) -> AdTemplate:
        template = derive_template(
            guideline, name=name, platform=platform, template_type=template_type
        )
        return self.add(template)

    def select_for_image(
        self, layout_map: ImageLayoutMap, angle: Optional[str] = None
    ) -> AdTemplate:
        """Pick the built-in template that suits the analysed image."""

        angle_key = (angle or "").strip().lower()
        if layout_map.visual_noise == "high":
            choice, reason = BOTTOM_BANNER, "high_noise"
        elif layout_map.visual_noise == "low" and layout_map.contrast_level != "low":
            choice, reason = CLEAN_OVERLAY, "clean_image"
        elif angle_key in URGENT_ANGLES:
            choice, reason = MINIMAL_HEADLINE, "urgent_angle"
        elif layout_map.contrast_level == "low":
            choice, reason = BOTTOM_BANNER, "low_contrast"
        else:
            choice, reason = CLEAN_OVERLAY, "default"

        logger.info(
            "catalog.template.selected",
            extra={
                "template_id": choice,
                "reason": reason,
                "noise": layout_map.visual_noise,
                "contrast": layout_map.contrast_level,
                "angle": angle_key or None,
            },
        )
        return self._system[choice]


__all__ = [
    "PLATFORM_DIMENSIONS",
    "TemplateCatalog",
    "canvas_for",
    "derive_template",
    "safe_areas_for",
]
