"""Compile stage: build (or syntax-check) a submission once before any testcase runs."""

import logging
import uuid

from judge import languages
from judge.config import get_settings
from judge.errors import InvalidSubmissionError, JudgeError
from judge.models import CompileResult
from judge.sandbox import SandboxInvocation, run_container

logger = logging.getLogger(__name__)


def new_temp_path() -> str:
    """Unique per-invocation base path inside the sandbox."""
    return f"{get_settings().judge.temp_dir.rstrip('/')}/judge_{uuid.uuid4().hex}"


def check_source(source: str | None) -> None:
    if not source or not source.strip():
        raise InvalidSubmissionError(detail="Source code cannot be empty")
    limit = get_settings().judge.max_source_bytes
    if len(source.encode("utf-8")) > limit:
        raise InvalidSubmissionError(detail=f"Source code exceeds maximum size of {limit} bytes")


async def compile_source(language: str, source: str) -> CompileResult:
    """Compile or syntax-check ``source``.

    Returns a result with ``log`` on success or ``error`` on failure.
    Never raises for user or sandbox errors.
    """
    settings = get_settings().judge
    try:
        descriptor = languages.resolve(language)
        check_source(source)
        command = languages.compile_command(
            descriptor, languages.encode_source(source), new_temp_path()
        )
        output = await run_container(SandboxInvocation(
            image=descriptor.image,
            command=command,
            stdin="",
            memory_mb=settings.compile_memory_mb,
            cpus=settings.compile_cpus,
            timeout_ms=settings.compile_timeout_ms,
        ))
    except JudgeError as e:
        logger.info("Compile failed for language=%s: %s", language, e.detail)
        return CompileResult(error=e.detail)

    if output.exit_code != 0:
        return CompileResult(error=output.text or f"Compiler exited with status {output.exit_code}")
    return CompileResult(log=output.text)
