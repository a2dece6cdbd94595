"""Reasoning oracle factory keyed by ``ORACLE_PROVIDER``."""
from __future__ import annotations

from adcreative.config import OracleConfig

from .base import ReasoningOracle


def build_oracle(config: OracleConfig) -> ReasoningOracle:
    if config.provider == "gemini":
        from .gemini_oracle import GeminiOracle

        return GeminiOracle(config)
    if config.provider == "openai":
        from .openai_oracle import OpenAIOracle

        return OpenAIOracle(config)
    raise ValueError(f"Unknown ORACLE_PROVIDER={config.provider}")
