from .base import ReasoningOracle
from .factory import build_oracle
from .parsing import extract_json_object, parse_guideline_payload

__all__ = [
    "ReasoningOracle",
    "build_oracle",
    "extract_json_object",
    "parse_guideline_payload",
]
