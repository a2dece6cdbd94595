"""Request and response bodies for the creative API."""

from __future__ import annotations

import re
from typing import Any, List, Literal, Optional

from pydantic import Field, constr, field_validator

from adcreative.models import (
    AdTemplate,
    BrandIdentity,
    CompatibilityResult,
    CompetitorAdBatch,
    GeneratedAd,
    ImageLayoutMap,
    VisualGuideline,
)
from adcreative.models._base import _CompatModel
from adcreative.services.qa import QAResult

DATA_URL_RX = re.compile(r"^data:image/[^;]+;base64,", re.IGNORECASE)


def _reject_data_uri(value: Any) -> Any:
    if isinstance(value, str) and DATA_URL_RX.match(value.strip()):
        raise ValueError("base64 data-url is not allowed; upload to object storage first")
    return value


class RegenerateGuidelinesRequest(_CompatModel):
    competitor_ads: List[CompetitorAdBatch] = Field(
        default_factory=list,
        description="Competitor ad batches to analyse; at least one must contain ads.",
    )
    brand_identity: Optional[BrandIdentity] = Field(
        None, description="Brand constraints that override market patterns."
    )


class GuidelineHistoryResponse(_CompatModel):
    project_id: str
    active: Optional[VisualGuideline] = Field(None, description="Most recent guideline.")
    history: List[VisualGuideline] = Field(default_factory=list, description="Newest first.")


class TemplateListResponse(_CompatModel):
    platform: Optional[str] = None
    templates: List[AdTemplate] = Field(default_factory=list)


class DeriveTemplateRequest(_CompatModel):
    guideline_id: Optional[str] = Field(
        None, description="Guideline to derive from; defaults to the active guideline."
    )
    name: Optional[constr(strip_whitespace=True, min_length=1)] = None
    platform: constr(strip_whitespace=True, min_length=1) = "meta"
    template_type: Literal["static_image", "carousel", "video_thumbnail"] = "static_image"


class SelectTemplateRequest(_CompatModel):
    layout_map: ImageLayoutMap = Field(..., description="Perceptual analysis of the image.")
    angle: Optional[str] = Field(None, description="Creative angle such as 'urgency'.")


class CompatibilityRequest(_CompatModel):
    template_id: Optional[str] = Field(None, description="Catalog template to check.")
    template: Optional[dict[str, Any]] = Field(
        None, description="Inline template (or bare layout) used when no id is given."
    )
    layout_map: dict[str, Any] = Field(..., description="Perceptual analysis of the image.")


class CompatibilityResponse(_CompatModel):
    template_id: Optional[str] = None
    result: CompatibilityResult


class RenderAdRequest(_CompatModel):
    template_id: Optional[str] = Field(None, description="Template whose fonts and limits apply.")
    image_url: constr(strip_whitespace=True, min_length=1)
    headline: constr(strip_whitespace=True, min_length=1)
    body_copy: constr(strip_whitespace=True, min_length=1)
    cta: constr(strip_whitespace=True, min_length=1)
    hook: Optional[str] = None
    dimensions: Optional[str] = Field(None, description="Canvas size as WxH, e.g. 1200x628.")
    platform: Optional[str] = None

    @field_validator("image_url", mode="before")
    @classmethod
    def _reject_inline_image(cls, value: Any) -> Any:
        return _reject_data_uri(value)


class RenderAdResponse(_CompatModel):
    ad: GeneratedAd
    image_url: str = Field(..., description="Public URL, or a data URL when storage is off.")
    qa: QAResult


class GeneratedAdListResponse(_CompatModel):
    project_id: str
    ads: List[GeneratedAd] = Field(default_factory=list)


__all__ = [
    "CompatibilityRequest",
    "CompatibilityResponse",
    "DeriveTemplateRequest",
    "GeneratedAdListResponse",
    "GuidelineHistoryResponse",
    "RegenerateGuidelinesRequest",
    "RenderAdRequest",
    "RenderAdResponse",
    "SelectTemplateRequest",
    "TemplateListResponse",
]
