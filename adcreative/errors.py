"""Error taxonomy shared by the guideline, template and rendering pipeline."""

from __future__ import annotations

from typing import Any


class CreativePipelineError(Exception):
    """Base pipeline error carrying a structured ``detail`` for API responses."""

    error_code = "PIPELINE_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        payload: dict[str, Any] = {"ok": False, "error": self.error_code, "message": message}
        if detail:
            payload.update(detail)
        self.detail = payload


class InsufficientDataError(CreativePipelineError):
    """No usable competitor input was supplied."""

    error_code = "INSUFFICIENT_DATA"
    status_code = 400


class InvalidInputError(CreativePipelineError):
    """A template or image map is missing a structural field."""

    error_code = "INVALID_INPUT"
    status_code = 422


class OracleUnavailableError(CreativePipelineError):
    """The reasoning oracle could not be reached or timed out."""

    error_code = "ORACLE_UNAVAILABLE"
    status_code = 503
    retryable = True


class OracleContractError(CreativePipelineError):
    """The reasoning oracle answered with something other than the agreed JSON shape."""

    error_code = "ORACLE_CONTRACT_VIOLATION"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        raw_response: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, detail=detail)
        self.raw_response = raw_response


class RenderError(CreativePipelineError):
    """The rendering surface failed to launch, load, capture or encode."""

    error_code = "RENDER_FAILED"
    status_code = 500
    retryable = True


class TemplateNotFoundError(CreativePipelineError):
    error_code = "TEMPLATE_NOT_FOUND"
    status_code = 404


class TemplateConflictError(CreativePipelineError):
    error_code = "TEMPLATE_EXISTS"
    status_code = 409


__all__ = [
    "CreativePipelineError",
    "InsufficientDataError",
    "InvalidInputError",
    "OracleContractError",
    "OracleUnavailableError",
    "RenderError",
    "TemplateConflictError",
    "TemplateNotFoundError",
]
