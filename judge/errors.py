"""Standardized error handling for the judging engine.

This module provides:
1. The exception hierarchy used across the engine
2. Exception handlers for the FastAPI surface
3. The standard error response model

Usage:
    from judge.errors import UnsupportedLanguageError, SandboxTimeoutError

    if descriptor is None:
        raise UnsupportedLanguageError(detail=f"Unsupported language: {lang}", language=lang)

    # Register handlers in main.py:
    from judge.errors import register_exception_handlers
    register_exception_handlers(app)
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    detail: str | None = None
    error_code: str | None = None
    context: dict[str, Any] | None = None


class JudgeError(Exception):
    """Base class for engine errors."""

    status_code: int = 500
    error: str = "judge_error"
    detail: str = "Judging failed"

    def __init__(
        self,
        detail: str | None = None,
        error_code: str | None = None,
        **context: Any,
    ) -> None:
        self.detail = detail or self.__class__.detail
        self.error_code = error_code
        self.context = context if context else None
        super().__init__(self.detail)

    def to_response(self) -> ErrorResponse:
        """Convert exception to error response model."""
        return ErrorResponse(
            error=self.error,
            detail=self.detail,
            error_code=self.error_code,
            context=self.context,
        )


class UnsupportedLanguageError(JudgeError):
    status_code = 400
    error = "unsupported_language"
    detail = "Unsupported language"


class InvalidSubmissionError(JudgeError):
    status_code = 400
    error = "invalid_submission"
    detail = "Invalid submission"


class ServiceUnavailableError(JudgeError):
    status_code = 503
    error = "service_unavailable"
    detail = "Service temporarily unavailable"


class PersistenceError(JudgeError):
    status_code = 500
    error = "database_error"
    detail = "Database operation failed"


class ProgramRuntimeError(JudgeError):
    """The submitted program exited with a non-zero status."""

    error = "runtime_error"
    detail = "Program exited with a non-zero status"


class SandboxError(JudgeError):
    """Base class for failures reported by the sandbox runner."""

    error = "sandbox_error"
    detail = "Sandbox execution failed"


class InvalidInvocationError(SandboxError):
    error = "invalid_invocation"
    detail = "Sandbox invocation is outside configured bounds"


class SandboxSpawnError(SandboxError):
    error = "sandbox_spawn_failed"
    detail = "Failed to start sandbox"


class SandboxStdinError(SandboxError):
    error = "sandbox_stdin_failed"
    detail = "Failed to write input to sandbox"


class SandboxOutputLimitError(SandboxError):
    error = "output_limit_exceeded"
    detail = "Output limit exceeded"


class SandboxTimeoutError(SandboxError):
    error = "timed_out"
    detail = "Container execution timed out"


class SandboxCrashedError(SandboxError):
    error = "abnormal_termination"
    detail = "Sandbox terminated abnormally"


async def judge_error_handler(request: Request, exc: JudgeError) -> JSONResponse:
    """Handle engine errors raised out of a route."""
    logger.warning(
        "Judge error: %s (status=%d, path=%s)",
        exc.detail,
        exc.status_code,
        request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(JudgeError, judge_error_handler)
