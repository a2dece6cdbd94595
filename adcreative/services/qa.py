"""Advisory pre-render checks for generated ad content."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from adcreative.models import AdAssets, AdTemplate, GeneratedAd
from adcreative.models._base import _FrozenRecord

BANNED_PHRASES = ("placeholder", "lorem ipsum", "[insert]", "undefined", "null")


class QAResult(_FrozenRecord):
    passed: bool
    checks: Dict[str, bool] = Field(default_factory=dict)
    issues: List[str] = Field(default_factory=list)


def check_ad(ad: GeneratedAd | AdAssets, template: Optional[AdTemplate] = None) -> QAResult:
    """Length checks need a template; the other checks always run."""

    assets = ad.assets_json if isinstance(ad, GeneratedAd) else ad
    layout = template.layout_json if template is not None else None
    checks = {
        "text_length": True,
        "banned_words": True,
        "assets_integrity": True,
    }
    issues: list[str] = []

    for label, role, text in (
        ("Headline", "headline", assets.headline),
        ("Body", "body", assets.body_copy),
        ("Hook", "hook", assets.hook),
    ):
        zone = layout.zone_for(role) if layout is not None else None
        if text and zone is not None and len(text) > zone.max_chars:
            checks["text_length"] = False
            issues.append(f"{label} exceeds limit ({len(text)}/{zone.max_chars})")

    combined = " ".join(
        part for part in (assets.headline, assets.body_copy, assets.cta, assets.hook) if part
    ).lower()
    if any(phrase in combined for phrase in BANNED_PHRASES):
        checks["banned_words"] = False
        issues.append("Ad contains placeholder or forbidden text.")

    if not (assets.image_url or "").strip():
        checks["assets_integrity"] = False
        issues.append("Missing campaign image URL.")

    return QAResult(passed=all(checks.values()), checks=checks, issues=issues)


__all__ = ["BANNED_PHRASES", "QAResult", "check_ad"]
