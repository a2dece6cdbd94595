from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from adcreative.config import OracleConfig
from adcreative.errors import OracleContractError, OracleUnavailableError

logger = logging.getLogger(__name__)


class GeminiOracle:
    """google-genai SDK based oracle."""

    name = "gemini"

    def __init__(self, config: OracleConfig) -> None:
        if not config.api_key:
            raise OracleUnavailableError("Gemini API key is not configured")
        self.config = config
        self.client = genai.Client(api_key=config.api_key)
        self.model = config.model or "gemini-2.5-pro"

    async def infer(self, context: dict[str, Any]) -> str:
        instructions = str(context.get("instructions") or "")
        data = json.dumps(context.get("data") or {}, ensure_ascii=False, default=str)

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[data],
                config=genai_types.GenerateContentConfig(
                    system_instruction=instructions,
                    response_mime_type="application/json",
                    temperature=0.2,
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            logger.warning("Gemini oracle request failed: %s", exc)
            raise OracleUnavailableError(f"Oracle request failed: {exc}") from exc

        text = getattr(response, "text", None)
        if not text:
            raise OracleContractError("Gemini returned no text", raw_response="")
        return text
