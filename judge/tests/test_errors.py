"""Tests for the error hierarchy and its HTTP mapping."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


class TestJudgeErrors:
    def test_unsupported_language_defaults(self):
        from judge.errors import UnsupportedLanguageError

        error = UnsupportedLanguageError()
        assert error.status_code == 400
        assert error.error == "unsupported_language"
        assert error.context is None

    def test_context_is_collected(self):
        from judge.errors import InvalidInvocationError

        error = InvalidInvocationError(detail="stdin too large", size=9)
        assert error.detail == "stdin too large"
        assert error.context == {"size": 9}
        assert str(error) == "stdin too large"

    @pytest.mark.parametrize(
        "name",
        [
            "InvalidInvocationError",
            "SandboxSpawnError",
            "SandboxStdinError",
            "SandboxOutputLimitError",
            "SandboxTimeoutError",
            "SandboxCrashedError",
        ],
    )
    def test_sandbox_failures_share_a_base(self, name):
        from judge import errors

        assert issubclass(getattr(errors, name), errors.SandboxError)

    def test_runtime_error_is_not_a_sandbox_failure(self):
        from judge.errors import ProgramRuntimeError, SandboxError

        assert not issubclass(ProgramRuntimeError, SandboxError)

    def test_to_response(self):
        from judge.errors import ServiceUnavailableError

        response = ServiceUnavailableError(detail="Database not connected").to_response()
        assert response.error == "service_unavailable"
        assert response.detail == "Database not connected"


class TestExceptionHandlers:
    @pytest.fixture
    def app(self):
        from judge.errors import InvalidSubmissionError, UnsupportedLanguageError, register_exception_handlers

        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/invalid")
        async def invalid():
            raise InvalidSubmissionError(detail="Invalid problem ID", problem_id=0)

        @app.get("/lang")
        async def lang():
            raise UnsupportedLanguageError(detail="Unsupported language: java")

        return app

    def test_invalid_submission_response(self, app):
        client = TestClient(app)
        response = client.get("/invalid")
        assert response.status_code == 400
        assert response.json() == {
            "error": "invalid_submission",
            "detail": "Invalid problem ID",
            "context": {"problem_id": 0},
        }

    def test_none_fields_are_dropped(self, app):
        client = TestClient(app)
        body = client.get("/lang").json()
        assert body == {"error": "unsupported_language", "detail": "Unsupported language: java"}
