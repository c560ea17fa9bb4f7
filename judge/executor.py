"""Test execution stage: run the submission once per testcase and classify the result."""

import logging

from judge import languages
from judge.compiler import check_source, new_temp_path
from judge.config import get_settings
from judge.errors import (
    InvalidSubmissionError,
    ProgramRuntimeError,
    SandboxCrashedError,
    SandboxError,
    SandboxTimeoutError,
)
from judge.models import Outcome, Testcase, TestcaseReport
from judge.sandbox import SandboxInvocation, run_container

logger = logging.getLogger(__name__)


async def execute(language: str, source: str, input_data: str) -> str:
    """Run ``source`` with ``input_data`` on stdin and return what it printed.

    Raises:
        UnsupportedLanguageError: Unknown language.
        InvalidSubmissionError: Empty or oversized source, or non-string input.
        ProgramRuntimeError: The program exited with a non-zero status.
        SandboxError: Any sandbox failure, including timeouts.
    """
    settings = get_settings().judge
    descriptor = languages.resolve(language)
    check_source(source)
    if not isinstance(input_data, str):
        raise InvalidSubmissionError(detail="Input must be a string")

    command = languages.run_command(descriptor, languages.encode_source(source), new_temp_path())
    output = await run_container(SandboxInvocation(
        image=descriptor.image,
        command=command,
        stdin=input_data,
        memory_mb=settings.run_memory_mb,
        cpus=settings.run_cpus,
        timeout_ms=settings.run_timeout_ms,
    ))
    if output.exit_code != 0:
        raise ProgramRuntimeError(
            detail=output.text.strip() or f"Process exited with status {output.exit_code}",
            exit_code=output.exit_code,
        )
    return output.text


def outputs_match(expected: str, actual: str) -> bool:
    """Exact comparison after trimming surrounding whitespace."""
    return expected.strip() == actual.strip()


async def run_testcase(language: str, source: str, testcase: Testcase) -> TestcaseReport:
    """Judge one testcase. Failures are reported, never raised."""
    try:
        actual = await execute(language, source, testcase.input)
    except SandboxTimeoutError as e:
        outcome, message = Outcome.TIME_LIMIT_EXCEEDED, e.detail
    except (ProgramRuntimeError, SandboxCrashedError) as e:
        outcome, message = Outcome.RUNTIME_ERROR, e.detail
    except SandboxError as e:
        logger.warning("Sandbox failure on testcase %d: %s (%s)", testcase.id, e.detail, e.error)
        outcome, message = Outcome.SANDBOX_ERROR, e.detail
    else:
        if outputs_match(testcase.output, actual):
            outcome = Outcome.PASSED
        else:
            outcome = Outcome.WRONG_ANSWER
        return TestcaseReport(
            testcase_id=testcase.id,
            is_sample=testcase.is_sample,
            outcome=outcome,
            expected=testcase.output.strip(),
            actual=actual.strip(),
        )

    return TestcaseReport(
        testcase_id=testcase.id,
        is_sample=testcase.is_sample,
        outcome=outcome,
        message=message,
    )


def format_report(report: TestcaseReport) -> str:
    """Render the runtime-log entry for a failed testcase."""
    name = f"Testcase {report.testcase_id}{' (sample)' if report.is_sample else ''}"
    if report.outcome is Outcome.PASSED:
        return ""
    if report.outcome is Outcome.WRONG_ANSWER:
        return f'{name} failed\nExpected: "{report.expected}"\nGot: "{report.actual}"\n\n'
    if report.outcome is Outcome.TIME_LIMIT_EXCEEDED:
        return f"{name} - Time Limit Exceeded\n\n"
    if report.outcome is Outcome.RUNTIME_ERROR:
        return f"{name} - Runtime Error: {report.message}\n\n"
    return f"{name} - Sandbox Error: {report.message}\n\n"
