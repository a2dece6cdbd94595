"""Visual guideline extraction from competitor ads and brand identity.

Performance signals are computed locally from the ad corpus. The reasoning
oracle only contributes qualitative market patterns and brand alignment; any
numbers it returns are replaced before the guideline is built.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Callable, Iterable, Optional, Sequence

from adcreative.errors import InsufficientDataError, OracleUnavailableError
from adcreative.models import (
    DEFAULT_CATEGORY,
    BrandIdentity,
    CompetitorAdBatch,
    PerformanceSignals,
    VisualGuideline,
)
from adcreative.models._base import utcnow
from adcreative.services.oracle import ReasoningOracle, parse_guideline_payload
from adcreative.services.prompts import build_guideline_context

logger = logging.getLogger(__name__)

CATEGORY_KEYWORDS = ("cosmetics", "fitness", "fashion", "tech", "food", "health", "beauty")
MAX_FREQUENCY_SCORE = 10


def frequency_score(competitor_count: int) -> int:
    return min(MAX_FREQUENCY_SCORE, 2 * max(competitor_count, 0))


def distinct_competitors(batches: Iterable[CompetitorAdBatch]) -> int:
    names = {batch.competitor_name.strip().casefold() for batch in batches}
    names.discard("")
    return len(names)


def compute_performance_signals(
    batches: Sequence[CompetitorAdBatch], now: dt.datetime
) -> PerformanceSignals:
    """Mean longevity over defined values, platform union and competitor frequency."""

    longevities = [
        value
        for batch in batches
        for ad in batch.ads
        if (value := ad.resolved_longevity(now)) is not None
    ]
    longevity = sum(longevities) / len(longevities) if longevities else 0.0

    platforms = {
        platform.strip().lower()
        for batch in batches
        for platform in batch.platforms
        if platform and platform.strip()
    }

    return PerformanceSignals(
        longevity_days=longevity,
        platform_coverage=sorted(platforms),
        frequency_score=frequency_score(distinct_competitors(batches)),
    )


def infer_category(
    batches: Sequence[CompetitorAdBatch], brand: Optional[BrandIdentity]
) -> str:
    if brand is not None and brand.market_category:
        return brand.market_category

    corpus = " ".join(
        [batch.competitor_name for batch in batches]
        + [ad.body for batch in batches for ad in batch.ads]
    ).lower()
    for keyword in CATEGORY_KEYWORDS:
        if keyword in corpus:
            return keyword
    return DEFAULT_CATEGORY


class GuidelineExtractor:
    """Turn competitor ad batches into a :class:`VisualGuideline`."""

    def __init__(
        self,
        oracle: ReasoningOracle,
        *,
        max_samples: int = 10,
        timeout: float = 60.0,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.oracle = oracle
        self.max_samples = max(1, max_samples)
        self.timeout = timeout
        self.clock = clock

    def usable_batches(self, batches: Iterable[CompetitorAdBatch]) -> list[CompetitorAdBatch]:
        usable: list[CompetitorAdBatch] = []
        for batch in batches:
            if batch.is_usable:
                usable.append(batch)
            else:
                logger.info(
                    "guidelines.batch.skipped",
                    extra={"competitor": batch.competitor_name, "reason": "no_ads"},
                )
        return usable

    async def extract(
        self,
        project_id: str,
        batches: Iterable[CompetitorAdBatch],
        brand_identity: Optional[BrandIdentity] = None,
    ) -> VisualGuideline:
        usable = self.usable_batches(batches)
        if not usable:
            raise InsufficientDataError(
                "No competitor ads available to analyse",
                detail={"project_id": project_id},
            )

        now = self.clock()
        brand = brand_identity or BrandIdentity()
        signals = compute_performance_signals(usable, now)
        context = build_guideline_context(
            usable, brand, max_samples=self.max_samples, now=now
        )

        logger.info(
            "guidelines.extract.start",
            extra={
                "project_id": project_id,
                "competitors": len(usable),
                "oracle": getattr(self.oracle, "name", type(self.oracle).__name__),
            },
        )
        try:
            raw = await asyncio.wait_for(self.oracle.infer(context), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "guidelines.oracle.timeout",
                extra={"project_id": project_id, "timeout": self.timeout},
            )
            raise OracleUnavailableError(
                f"Oracle did not answer within {self.timeout:g}s",
                detail={"project_id": project_id},
            ) from exc

        payload = parse_guideline_payload(raw)
        if payload.performance_signals:
            logger.debug(
                "guidelines.oracle.signals_replaced",
                extra={"project_id": project_id, "oracle_signals": payload.performance_signals},
            )

        guideline = VisualGuideline(
            project_id=project_id,
            category=infer_category(usable, brand_identity),
            market_patterns=payload.market_patterns,
            performance_signals=signals,
            brand_alignment=payload.brand_alignment,
            created_at=now,
        )
        logger.info(
            "guidelines.extract.done",
            extra={
                "project_id": project_id,
                "guideline_id": guideline.id,
                "category": guideline.category,
            },
        )
        return guideline


__all__ = [
    "CATEGORY_KEYWORDS",
    "GuidelineExtractor",
    "compute_performance_signals",
    "distinct_competitors",
    "frequency_score",
    "infer_category",
]
