"""Generated ad records produced by the renderer."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import Field, constr

from ._base import _FrozenRecord, new_id, utcnow

DEFAULT_DIMENSIONS = "1200x628"


class AdAssets(_FrozenRecord):
    image_url: constr(strip_whitespace=True, min_length=1)
    headline: constr(strip_whitespace=True, min_length=1)
    body_copy: constr(strip_whitespace=True, min_length=1)
    cta: constr(strip_whitespace=True, min_length=1)
    hook: Optional[str] = None


class AdMetadata(_FrozenRecord):
    dimensions: Optional[str] = Field(DEFAULT_DIMENSIONS, description="Canvas size as WxH")
    platform: Optional[str] = None
    rendered_key: Optional[str] = None
    rendered_url: Optional[str] = None
    content_type: Optional[str] = None


class GeneratedAd(_FrozenRecord):
    id: str = Field(default_factory=new_id)
    project_id: str
    template_id: Optional[str] = None
    assets_json: AdAssets
    metadata_json: AdMetadata = Field(default_factory=AdMetadata)
    created_at: dt.datetime = Field(default_factory=utcnow)
