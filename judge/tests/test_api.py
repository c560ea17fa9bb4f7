"""Tests for the HTTP surface."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

import judge.main as main
from judge.dependencies import get_repository
from judge.models import JudgeResult, Verdict


@pytest.fixture
def client():
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def repository(client):
    repo = AsyncMock()
    main.app.dependency_overrides[get_repository] = lambda: repo
    return repo


def accepted(score=3):
    return JudgeResult(score=score, total=score, status="accepted", verdict=Verdict.ACCEPTED, submission_id=17)


class TestLanguages:
    def test_lists_supported_languages(self, client):
        response = client.get("/languages")
        assert response.status_code == 200
        keys = [lang["key"] for lang in response.json()["languages"]]
        assert keys == ["c", "cpp", "python"]


class TestHealth:
    def test_reports_sandbox_and_database(self, client):
        with patch("judge.controllers.health.is_docker_available", AsyncMock(return_value=True)):
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "sandbox": "healthy", "database": "disabled"}

    def test_sandbox_unavailable(self, client):
        with patch("judge.controllers.health.is_docker_available", AsyncMock(return_value=False)):
            assert client.get("/health").json()["sandbox"] == "unavailable"


class TestSubmissions:
    def test_requires_database(self, client):
        response = client.post("/submissions", json={"source_code": "print(1)", "problem_id": 1, "language": "python"})
        assert response.status_code == 503
        assert response.json()["error"] == "service_unavailable"

    def test_judges_with_explicit_language(self, client, repository):
        with patch("judge.controllers.submissions.judge_submission", AsyncMock(return_value=accepted())) as run:
            response = client.post(
                "/submissions",
                json={"source_code": "print(2)", "problem_id": 4, "user_id": 9, "language": "python"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "accepted"
        assert body["submission_id"] == 17
        assert "runtime_log" not in body

        request, repo = run.await_args.args
        assert request.language == "python"
        assert request.problem_id == 4
        assert request.user_id == 9
        assert repo is repository

    def test_language_detected_from_filename(self, client, repository):
        with patch("judge.controllers.submissions.judge_submission", AsyncMock(return_value=accepted())) as run:
            client.post("/submissions", json={"source_code": "int main(){}", "problem_id": 1, "filename": "a.cc"})
        assert run.await_args.args[0].language == "cpp"

    def test_unknown_extension_rejected(self, client, repository):
        response = client.post(
            "/submissions", json={"source_code": "class A {}", "problem_id": 1, "filename": "A.java"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "unsupported_language"

    def test_empty_code_rejected(self, client, repository):
        response = client.post("/submissions", json={"source_code": "  ", "problem_id": 1, "language": "c"})
        assert response.status_code == 400
        assert response.json()["detail"] == "No code provided"

    def test_rejection_is_not_an_http_error(self, client, repository):
        result = JudgeResult(
            score=0, total=0, status="rejected", verdict=Verdict.INVALID_SUBMISSION,
            runtime_log="No testcases found for this problem",
        )
        with patch("judge.controllers.submissions.judge_submission", AsyncMock(return_value=result)):
            response = client.post("/submissions", json={"source_code": "x", "problem_id": 3, "language": "python"})
        assert response.status_code == 200
        assert response.json()["verdict"] == "invalid_submission"
