from __future__ import annotations

import asyncio
import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from adcreative.config import OracleConfig
from adcreative.errors import OracleContractError, OracleUnavailableError
from adcreative.services.oracle import build_oracle, extract_json_object, parse_guideline_payload
from adcreative.services.oracle.openai_oracle import OpenAIOracle, _build_openai_client
from adcreative.services.oracle.parsing import strip_code_fences
from conftest import oracle_payload


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("plain") == "plain"


def test_backticks_inside_string_values_survive() -> None:
    payload = oracle_payload(composition_rules=["Wrap the price in ```triple``` ticks"])
    raw = "```json\n" + json.dumps(payload) + "\n```"

    parsed = parse_guideline_payload(raw)

    assert parsed.market_patterns.composition_rules == ["Wrap the price in ```triple``` ticks"]


def test_extract_json_object_slices_first_to_last_brace() -> None:
    raw = 'Sure! {"outer": {"inner": [1, 2]}} Hope this helps.'
    assert extract_json_object(raw) == {"outer": {"inner": [1, 2]}}


@pytest.mark.parametrize("raw", ["", "no braces here", "} backwards {"])
def test_extract_json_object_without_object(raw: str) -> None:
    with pytest.raises(OracleContractError) as excinfo:
        extract_json_object(raw)
    assert excinfo.value.raw_response == raw
    assert excinfo.value.status_code == 502


def test_extract_json_object_invalid_json() -> None:
    with pytest.raises(OracleContractError) as excinfo:
        extract_json_object("{'single': 'quotes'}")
    assert "position" in excinfo.value.detail


def test_parse_guideline_payload_normalises_and_joins() -> None:
    payload = oracle_payload(image_placement=" Right ", background_style="LIFESTYLE")
    parsed = parse_guideline_payload(json.dumps(payload))

    assert parsed.market_patterns.image_placement == "right"
    assert parsed.market_patterns.background_style == "lifestyle"
    assert parsed.brand_alignment.adaptations == {"cta_position": "Bottom CTA, brand button style"}


def test_parse_guideline_payload_requires_market_patterns() -> None:
    with pytest.raises(OracleContractError) as excinfo:
        parse_guideline_payload('{"performance_signals": {}}')
    assert excinfo.value.detail["errors"]


def test_build_oracle_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError):
        build_oracle(OracleConfig(provider="mystery"))


def test_gemini_oracle_requires_api_key() -> None:
    with pytest.raises(OracleUnavailableError):
        build_oracle(OracleConfig(provider="gemini", api_key=None))


class OpenAIOracleTestCase(unittest.TestCase):
    def make_config(self, **overrides) -> OracleConfig:
        defaults = {
            "provider": "openai",
            "api_key": "sk-test",
            "model": "gpt-4o-mini",
            "proxy": None,
            "timeout_seconds": 5.0,
        }
        defaults.update(overrides)
        return OracleConfig(**defaults)

    def test_client_initialisation_supports_proxy(self) -> None:
        with patch("adcreative.services.oracle.openai_oracle.AsyncOpenAI") as patched_openai, patch(
            "adcreative.services.oracle.openai_oracle.httpx.AsyncClient"
        ) as patched_httpx:
            client, http_client = _build_openai_client(
                "sk-test", base_url="https://api.example.com/v1", proxy="http://127.0.0.1:7890"
            )

        patched_httpx.assert_called_once()
        self.assertEqual(patched_httpx.call_args.kwargs["proxy"], "http://127.0.0.1:7890")
        kwargs = patched_openai.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "sk-test")
        self.assertEqual(kwargs["base_url"], "https://api.example.com/v1")
        self.assertEqual(kwargs["max_retries"], 0)
        self.assertIs(kwargs["http_client"], http_client)
        self.assertIs(client, patched_openai.return_value)

    def test_missing_key_is_unavailable(self) -> None:
        with self.assertRaises(OracleUnavailableError):
            _build_openai_client("")

    def test_infer_sends_instructions_and_data(self) -> None:
        mock_client = MagicMock()
        message = MagicMock()
        message.message.content = '{"ok": true}'
        mock_client.chat.completions.create = AsyncMock(return_value=MagicMock(choices=[message]))
        mock_client.close = AsyncMock()

        with patch(
            "adcreative.services.oracle.openai_oracle.AsyncOpenAI", return_value=mock_client
        ):
            oracle = OpenAIOracle(self.make_config())
            raw = asyncio.run(oracle.infer({"instructions": "Be brief", "data": {"ads": [1]}}))

        self.assertEqual(raw, '{"ok": true}')
        call = mock_client.chat.completions.create.call_args.kwargs
        self.assertEqual(call["model"], "gpt-4o-mini")
        self.assertEqual(call["messages"][0], {"role": "system", "content": "Be brief"})
        self.assertEqual(json.loads(call["messages"][1]["content"]), {"ads": [1]})
        mock_client.close.assert_awaited_once()

    def test_empty_completion_is_contract_violation(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(return_value=MagicMock(choices=[]))
        mock_client.close = AsyncMock()

        with patch(
            "adcreative.services.oracle.openai_oracle.AsyncOpenAI", return_value=mock_client
        ):
            oracle = OpenAIOracle(self.make_config())
            with self.assertRaises(OracleContractError):
                asyncio.run(oracle.infer({"instructions": "x", "data": {}}))


if __name__ == "__main__":
    unittest.main()
