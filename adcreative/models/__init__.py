"""Pydantic records shared by the extractor, catalog, validator and renderer."""

from .ad import DEFAULT_DIMENSIONS, AdAssets, AdMetadata, GeneratedAd  # noqa: F401
from .competitor import (  # noqa: F401
    BrandIdentity,
    CompetitorAd,
    CompetitorAdBatch,
)
from .guideline import (  # noqa: F401
    DEFAULT_CATEGORY,
    BrandAlignment,
    MarketPatterns,
    OracleGuidelinePayload,
    PerformanceSignals,
    VisualGuideline,
)
from .layout_map import (  # noqa: F401
    COMPATIBILITY_THRESHOLD,
    CompatibilityResult,
    ImageLayoutMap,
    Rect,
)
from .template import (  # noqa: F401
    AdTemplate,
    FontSpec,
    ImageZone,
    SafeAreas,
    StyleRules,
    TemplateLayout,
    TextZone,
    ZonePoint,
)

__all__ = [
    "AdAssets",
    "AdMetadata",
    "AdTemplate",
    "BrandAlignment",
    "BrandIdentity",
    "COMPATIBILITY_THRESHOLD",
    "CompatibilityResult",
    "CompetitorAd",
    "CompetitorAdBatch",
    "DEFAULT_CATEGORY",
    "DEFAULT_DIMENSIONS",
    "FontSpec",
    "GeneratedAd",
    "ImageLayoutMap",
    "ImageZone",
    "MarketPatterns",
    "OracleGuidelinePayload",
    "PerformanceSignals",
    "Rect",
    "SafeAreas",
    "StyleRules",
    "TemplateLayout",
    "TextZone",
    "VisualGuideline",
    "ZonePoint",
]
