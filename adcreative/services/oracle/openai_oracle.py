# -*- coding: utf-8 -*-
"""
OpenAI-compatible reasoning oracle.
- Uses a safe client factory (httpx proxy injected via http_client).
- Returns the raw completion text; JSON extraction happens in ``parsing``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from openai import APIConnectionError, APIError, APITimeoutError, AsyncOpenAI

from adcreative.config import OracleConfig
from adcreative.errors import OracleContractError, OracleUnavailableError

logger = logging.getLogger(__name__)

# Only these keywords may reach the SDK constructor.
_ALLOWED_OPENAI_KWARGS = {"api_key", "base_url", "timeout", "max_retries", "http_client"}


def _sanitize_openai_kwargs(kw: dict[str, Any]) -> dict[str, Any]:
    cleaned = {k: v for k, v in kw.items() if k in _ALLOWED_OPENAI_KWARGS}
    for k in set(kw) - _ALLOWED_OPENAI_KWARGS:
        logger.debug("Removed unsupported OpenAI kwarg '%s' from client kwargs", k)
    return cleaned


def _build_openai_client(
    api_key: str,
    *,
    base_url: Optional[str] = None,
    proxy: Optional[str] = None,
    timeout: float = 60.0,
) -> tuple[AsyncOpenAI, Optional[httpx.AsyncClient]]:
    """
    Build the async OpenAI client:
      - the proxy only lives on httpx.AsyncClient(proxy=...), injected as http_client
      - retries are disabled; retry policy belongs to the caller
      - returns (client, http_client); the caller closes http_client
    """
    if not api_key:
        raise OracleUnavailableError("Oracle API key is not configured")

    kw: dict[str, Any] = {"api_key": api_key, "timeout": timeout, "max_retries": 0}
    if base_url:
        kw["base_url"] = base_url

    http_client: httpx.AsyncClient | None = None
    if proxy:
        http_client = httpx.AsyncClient(
            proxy=proxy, timeout=httpx.Timeout(timeout, connect=10.0)
        )
        kw["http_client"] = http_client

    return AsyncOpenAI(**_sanitize_openai_kwargs(kw)), http_client


class OpenAIOracle:
    """Chat-completions backed oracle for structural guideline inference."""

    name = "openai"

    def __init__(self, config: OracleConfig) -> None:
        self.config = config
        self.model = config.model or "gpt-4o-mini"

    async def infer(self, context: dict[str, Any]) -> str:
        instructions = str(context.get("instructions") or "")
        data = json.dumps(context.get("data") or {}, ensure_ascii=False, default=str)

        client, http_client = _build_openai_client(
            self.config.api_key or "",
            base_url=self.config.base_url,
            proxy=self.config.proxy,
            timeout=self.config.timeout_seconds,
        )
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": instructions},
                    {"role": "user", "content": data},
                ],
                temperature=0.2,
                response_format={"type": "json_object"},
            )
        except (APITimeoutError, APIConnectionError) as exc:
            logger.warning("OpenAI oracle unreachable: %s", exc)
            raise OracleUnavailableError(f"Oracle request failed: {exc}") from exc
        except APIError as exc:
            logger.warning("OpenAI oracle returned an error: %s", exc)
            raise OracleUnavailableError(f"Oracle returned an error: {exc}") from exc
        finally:
            await client.close()
            if http_client is not None:
                await http_client.aclose()

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content:
            raise OracleContractError("Oracle returned an empty completion", raw_response="")
        return content
