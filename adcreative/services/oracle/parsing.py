"""Extraction of the JSON object embedded in oracle responses.

This is the only place that touches raw oracle text. Everything downstream
receives either a validated :class:`OracleGuidelinePayload` or an
:class:`OracleContractError`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from adcreative.errors import OracleContractError
from adcreative.models import OracleGuidelinePayload

logger = logging.getLogger(__name__)

# Fence lines only; backticks inside JSON string values are content.
_FENCE_RE = re.compile(r"^[ \t]*```[A-Za-z0-9_-]*[ \t]*$", re.MULTILINE)
_PREVIEW_LIMIT = 512


def _preview(text: str, limit: int = _PREVIEW_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…(+{len(text) - limit} chars)"


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def extract_json_object(raw: str) -> dict[str, Any]:
    """Return the object spanning the first ``{`` to the last ``}`` of ``raw``."""

    text = strip_code_fences(raw)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        logger.warning(
            "oracle.response.no_json_object",
            extra={"raw_preview": _preview(raw or "")},
        )
        raise OracleContractError(
            "Oracle response does not contain a JSON object",
            raw_response=raw,
        )

    try:
        payload = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        logger.warning(
            "oracle.response.invalid_json",
            extra={"raw_preview": _preview(raw), "error": str(exc)},
        )
        raise OracleContractError(
            f"Oracle response is not valid JSON: {exc.msg}",
            raw_response=raw,
            detail={"position": exc.pos},
        ) from exc

    if not isinstance(payload, dict):
        raise OracleContractError("Oracle response JSON is not an object", raw_response=raw)
    return payload


def parse_guideline_payload(raw: str) -> OracleGuidelinePayload:
    """Extract and validate the guideline-shaped object returned by the oracle."""

    payload = extract_json_object(raw)
    try:
        return OracleGuidelinePayload.model_validate(payload)
    except ValidationError as exc:
        errors = [
            {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
            for err in exc.errors()
        ]
        logger.warning(
            "oracle.response.shape_mismatch",
            extra={"raw_preview": _preview(raw), "errors": errors},
        )
        raise OracleContractError(
            "Oracle response does not match the visual guideline schema",
            raw_response=raw,
            detail={"errors": errors},
        ) from exc


__all__ = ["extract_json_object", "parse_guideline_payload", "strip_code_fences"]
