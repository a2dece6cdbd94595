"""Guideline history per project with serialized regeneration."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

from adcreative.errors import OracleUnavailableError
from adcreative.models import BrandIdentity, CompetitorAdBatch, VisualGuideline
from adcreative.services.guidelines import GuidelineExtractor
from adcreative.services.records import GUIDELINES, RecordStore

logger = logging.getLogger(__name__)


class GuidelineService:
    """Append-only guideline history; the newest guideline is the active one.

    Only one regeneration runs per project at a time. A failed extraction is
    never persisted, so the previously active guideline stays in place.
    """

    def __init__(
        self, store: RecordStore, extractor: Optional[GuidelineExtractor] = None
    ) -> None:
        self.store = store
        self.extractor = extractor
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _project_lock(self, project_id: str) -> AsyncIterator[None]:
        # The entry is dropped once no task holds or waits for the lock.
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._lock_users[project_id] = self._lock_users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[project_id] -= 1
            if not self._lock_users[project_id]:
                del self._lock_users[project_id]
                del self._locks[project_id]

    async def regenerate(
        self,
        project_id: str,
        batches: Iterable[CompetitorAdBatch],
        brand_identity: Optional[BrandIdentity] = None,
    ) -> VisualGuideline:
        if self.extractor is None:
            raise OracleUnavailableError(
                "Reasoning oracle is not configured", detail={"project_id": project_id}
            )
        batches = list(batches)
        async with self._project_lock(project_id):
            guideline = await self.extractor.extract(project_id, batches, brand_identity)
            self.store.insert(GUIDELINES, guideline.model_dump(mode="json"))
        logger.info(
            "guidelines.persisted",
            extra={"project_id": project_id, "guideline_id": guideline.id},
        )
        return guideline

    def history(self, project_id: str) -> list[VisualGuideline]:
        return [
            VisualGuideline.model_validate(record)
            for record in self.store.list_latest(GUIDELINES, project_id)
        ]

    def active(self, project_id: str) -> Optional[VisualGuideline]:
        records = self.store.list_latest(GUIDELINES, project_id)
        if not records:
            return None
        return VisualGuideline.model_validate(records[0])

    def find(self, project_id: str, guideline_id: str) -> Optional[VisualGuideline]:
        for guideline in self.history(project_id):
            if guideline.id == guideline_id:
                return guideline
        return None


__all__ = ["GuidelineService"]
