from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict


class _CompatModel(BaseModel):
    """Base model for inbound payloads; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _FrozenRecord(BaseModel):
    """Immutable record produced by the pipeline."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def normalise_choice(value: object) -> object:
    """Trim and lower-case enumerated strings before Literal validation."""

    if isinstance(value, str):
        return value.strip().lower()
    return value
