from __future__ import annotations

import textwrap
from typing import Any, Iterable

from adcreative.models import BrandIdentity, CompetitorAdBatch

GUIDELINE_TASK = "visual_guidelines"

GUIDELINE_INSTRUCTIONS = textwrap.dedent(
    """
    You are an expert visual strategist specializing in performance advertising.

    Extract STRUCTURAL visual patterns from the competitor ads in the user message.
    Long-running ads are the performance signal; repetition across competitors is the
    frequency signal. Do not copy creative: describe abstract layout, composition and
    hierarchy patterns only.

    Analyse image placement, text hierarchy, CTA position, visual density, background
    style, dominant colors and repeated composition rules. Then align them with the
    brand identity: list where brand rules must override the market pattern
    ("overrides") and where a market pattern is blended with the brand ("adaptations").
    Brand rules always win when they conflict with the market.

    Return a SINGLE JSON object and nothing else, with exactly this structure:

    {
      "market_patterns": {
        "image_placement": "center" | "left" | "right",
        "text_hierarchy": "headline_first" | "support_first",
        "cta_position": "bottom" | "center" | "overlay",
        "visual_density": "minimal" | "moderate" | "busy",
        "background_style": "clean" | "lifestyle" | "gradient",
        "dominant_colors": ["#hex", ...],
        "composition_rules": ["rule", ...]
      },
      "performance_signals": {
        "longevity_days": number,
        "platform_coverage": ["platform", ...],
        "frequency_score": number
      },
      "brand_alignment": {
        "overrides": {"pattern_key": "justification"},
        "adaptations": {"pattern_key": "justification"}
      }
    }
    """
).strip()


def _sample_ads(batch: CompetitorAdBatch, limit: int, now) -> list[dict[str, Any]]:
    samples = []
    for ad in batch.ads[:limit]:
        samples.append(
            {
                "body": ad.body,
                "headline": ad.headline,
                "platform": ad.platform,
                "longevity_days": ad.resolved_longevity(now),
                "snapshot_url": ad.snapshot_url,
            }
        )
    return samples


def brand_snapshot(brand: BrandIdentity) -> dict[str, Any]:
    visual = brand.visual
    return {
        "colors": visual.colors.model_dump(exclude_none=True),
        "typography": visual.typography,
        "image_style": visual.image_style or "Not specified",
        "mood": visual.mood or "Not specified",
        "visual_rules": list(brand.guardrails.visual_rules),
    }


def build_guideline_context(
    batches: Iterable[CompetitorAdBatch],
    brand: BrandIdentity,
    *,
    max_samples: int,
    now,
) -> dict[str, Any]:
    """Assemble the bounded oracle context for guideline extraction."""

    competitors = [
        {
            "competitor": batch.competitor_name,
            "total_ads": batch.total_ads,
            "platforms": list(batch.platforms),
            "frequency": batch.ad_frequency,
            "sample_ads": _sample_ads(batch, max_samples, now),
        }
        for batch in batches
    ]
    return {
        "task": GUIDELINE_TASK,
        "instructions": GUIDELINE_INSTRUCTIONS,
        "data": {
            "competitor_ads": competitors,
            "brand_identity": brand_snapshot(brand),
        },
    }


__all__ = ["GUIDELINE_INSTRUCTIONS", "brand_snapshot", "build_guideline_context"]
