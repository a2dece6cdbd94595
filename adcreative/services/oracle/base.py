from __future__ import annotations

from typing import Any, Protocol


class ReasoningOracle(Protocol):
    """External reasoning service used for qualitative pattern inference.

    ``context`` carries ``instructions`` (the task prompt) and ``data`` (a
    JSON-serialisable payload). Implementations return the raw response text;
    callers are responsible for extracting and validating JSON from it.
    """

    name: str

    async def infer(self, context: dict[str, Any]) -> str:
        ...
