"""Load the built-in ad templates shipped with the package."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from adcreative.models import AdTemplate

_TEMPLATES_DIR = Path(__file__).resolve().parent
SYSTEM_TEMPLATES_FILE = _TEMPLATES_DIR / "system_templates.json"

CLEAN_OVERLAY = "meta_clean_overlay"
BOTTOM_BANNER = "meta_bottom_banner"
MINIMAL_HEADLINE = "meta_minimal_headline"


@lru_cache()
def load_system_templates() -> dict[str, AdTemplate]:
    """Load system templates by id and validate them into AdTemplate records."""

    with SYSTEM_TEMPLATES_FILE.open("r", encoding="utf-8") as handle:
        payload: dict[str, Any] = json.load(handle)

    return {
        template_id: AdTemplate.model_validate({**body, "id": template_id})
        for template_id, body in payload.items()
    }


def load_system_template(template_id: str) -> AdTemplate:
    return load_system_templates()[template_id]


__all__ = [
    "BOTTOM_BANNER",
    "CLEAN_OVERLAY",
    "MINIMAL_HEADLINE",
    "load_system_template",
    "load_system_templates",
]
