"""Verdict aggregation: the judging pipeline from compile to the terminal submission row.

A run is strictly sequential: compile first, then every testcase in ascending
id order. A failing testcase never stops the run, so the runtime log and the
partial score always cover every testcase.
"""

import logging
import time
from typing import Protocol

from judge import languages
from judge.compiler import check_source, compile_source
from judge.config import get_settings
from judge.errors import InvalidSubmissionError, JudgeError
from judge.executor import format_report, run_testcase
from judge.models import (
    JudgeRequest,
    JudgeResult,
    SubmissionRecord,
    Testcase,
    TestcaseReport,
    Verdict,
)

logger = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    async def save_submission(self, record: SubmissionRecord) -> int: ...


class ProblemRepository(SubmissionStore, Protocol):
    async def fetch_testcases(self, problem_id: int) -> list[Testcase]: ...


def _rejected(message: str) -> JudgeResult:
    return JudgeResult(
        score=0,
        total=0,
        status="rejected",
        verdict=Verdict.INVALID_SUBMISSION,
        runtime_log=message,
    )


def _check_request(request: JudgeRequest) -> None:
    languages.resolve(request.language)
    check_source(request.source_code)
    if request.problem_id < 1:
        raise InvalidSubmissionError(detail="Invalid problem ID")
    if request.user_id < 1:
        raise InvalidSubmissionError(detail="Invalid user ID")


def total_weight(testcases: list[Testcase]) -> int:
    """Sum of weights over non-sample testcases. Samples never count."""
    return sum(tc.weight for tc in testcases if not tc.is_sample)


def _check_testcases(testcases: list[Testcase]) -> int:
    if not testcases:
        raise InvalidSubmissionError(detail="No testcases found for this problem")

    limit = get_settings().judge.max_testcase_bytes
    for tc in testcases:
        if len(tc.input.encode("utf-8")) > limit:
            raise InvalidSubmissionError(detail=f"Testcase {tc.id} input exceeds maximum size")
        if len(tc.output.encode("utf-8")) > limit:
            raise InvalidSubmissionError(detail=f"Testcase {tc.id} output exceeds maximum size")

    if all(tc.is_sample for tc in testcases):
        raise InvalidSubmissionError(detail="Problem must have at least one non-sample testcase")

    total = total_weight(testcases)
    if total == 0:
        raise InvalidSubmissionError(
            detail="Total weight of hidden testcases must be greater than zero"
        )
    return total


def earned_weight(testcases: list[Testcase], reports: list[TestcaseReport]) -> int:
    return sum(
        tc.weight
        for tc, report in zip(testcases, reports)
        if report.passed and not tc.is_sample
    )


async def _persist(store: SubmissionStore | None, record: SubmissionRecord) -> int | None:
    if store is None:
        return None
    try:
        return await store.save_submission(record)
    except Exception:
        logger.exception(
            "Failed to persist submission (user=%d, problem=%d)",
            record.user_id, record.problem_id,
        )
        return None


async def judge(
    request: JudgeRequest,
    testcases: list[Testcase],
    store: SubmissionStore | None = None,
) -> JudgeResult:
    """Compile and run a submission against ``testcases`` and record the verdict.

    Requests that fail validation (unsupported language, empty or oversized
    source, unusable testcase set) are rejected without touching the sandbox
    and are not persisted. Every other run writes exactly one row to ``store``.
    """
    try:
        _check_request(request)
        ordered = sorted(testcases, key=lambda tc: tc.id)
        total = _check_testcases(ordered)
    except JudgeError as e:
        logger.info("Submission rejected before judging: %s", e.detail)
        return _rejected(e.detail)

    started = time.monotonic()
    compiled = await compile_source(request.language, request.source_code)

    if not compiled.ok:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        submission_id = await _persist(store, SubmissionRecord(
            user_id=request.user_id,
            problem_id=request.problem_id,
            language=request.language,
            source_code=request.source_code,
            status=Verdict.COMPILE_ERROR.status,
            verdict=Verdict.COMPILE_ERROR.value,
            score=0,
            total=total,
            compile_log="Compilation Error: " + compiled.error,
            execution_time_ms=elapsed_ms,
        ))
        return JudgeResult(
            score=0,
            total=total,
            status="rejected",
            verdict=Verdict.COMPILE_ERROR,
            compile_log=compiled.error,
            execution_time_ms=elapsed_ms,
            submission_id=submission_id,
        )

    reports: list[TestcaseReport] = []
    for testcase in ordered:
        reports.append(await run_testcase(request.language, request.source_code, testcase))
    elapsed_ms = int((time.monotonic() - started) * 1000)

    failures = [r for r in reports if not r.passed]
    verdict = Verdict.from_outcome(failures[0].outcome) if failures else Verdict.ACCEPTED
    score = earned_weight(ordered, reports)
    runtime_log = "".join(format_report(r) for r in failures) or None

    logger.info(
        "Judged submission: user=%d problem=%d language=%s verdict=%s score=%d/%d time=%dms",
        request.user_id, request.problem_id, request.language,
        verdict.value, score, total, elapsed_ms,
    )

    submission_id = await _persist(store, SubmissionRecord(
        user_id=request.user_id,
        problem_id=request.problem_id,
        language=request.language,
        source_code=request.source_code,
        status=verdict.status,
        verdict=verdict.value,
        score=score,
        total=total,
        compile_log=compiled.log,
        runtime_log=runtime_log,
        execution_time_ms=elapsed_ms,
    ))
    return JudgeResult(
        score=score,
        total=total,
        status=verdict.status,
        verdict=verdict,
        compile_log=compiled.log,
        runtime_log=runtime_log,
        execution_time_ms=elapsed_ms,
        submission_id=submission_id,
    )


async def judge_submission(request: JudgeRequest, repository: ProblemRepository) -> JudgeResult:
    """Judge ``request`` against the stored testcases of its problem."""
    if request.problem_id < 1:
        return _rejected("Invalid problem ID")
    try:
        testcases = await repository.fetch_testcases(request.problem_id)
    except JudgeError as e:
        logger.warning("Could not load testcases for problem %d: %s", request.problem_id, e.detail)
        return _rejected("Failed to retrieve testcases")
    return await judge(request, testcases, store=repository)
