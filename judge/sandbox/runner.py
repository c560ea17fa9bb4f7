"""Run one compile or test command inside a throwaway Docker container.

Security is provided by Docker's isolation features:
- --network none: No network access
- --memory/--memory-swap: Memory ceiling
- --cpus: CPU share
- --pids-limit: Process limits (fork bombs)
- --ulimit nofile: Open file descriptor limits
- --cap-drop ALL: Drop all capabilities
- --security-opt no-new-privileges: Prevent privilege escalation
- --rm: Container filesystem is discarded on exit

This runner adds:
- Input size cap, checked before anything is spawned
- Output cap on stdout+stderr, enforced by killing the container
- Wall-clock timeout, enforced by killing the container
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass

from judge.config import SandboxSettings, get_settings
from judge.errors import (
    InvalidInvocationError,
    SandboxCrashedError,
    SandboxError,
    SandboxOutputLimitError,
    SandboxSpawnError,
    SandboxStdinError,
    SandboxTimeoutError,
)

_logger = logging.getLogger("judge.sandbox")

READ_CHUNK_BYTES = 64 * 1024
# docker reports a SIGKILLed container (OOM killer included) as 128 + 9
DOCKER_SIGKILL_EXIT = 137

_background_tasks: set[asyncio.Task] = set()


@dataclass(frozen=True)
class SandboxInvocation:
    image: str
    command: str
    stdin: str = ""
    memory_mb: int = 256
    cpus: float = 0.5
    timeout_ms: int = 5000


@dataclass(frozen=True)
class SandboxOutput:
    text: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int


class _Outcome:
    """Single-assignment result slot. The first completion wins."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._future: asyncio.Future[SandboxOutput] = loop.create_future()

    def succeed(self, value: SandboxOutput) -> bool:
        if self._future.done():
            return False
        self._future.set_result(value)
        return True

    def fail(self, exc: SandboxError) -> bool:
        if self._future.done():
            return False
        self._future.set_exception(exc)
        return True

    def __await__(self):
        return self._future.__await__()


def validate_invocation(invocation: SandboxInvocation, settings: SandboxSettings) -> bytes:
    """Check an invocation against the configured bounds.

    Returns the encoded stdin payload.

    Raises:
        InvalidInvocationError: If any field is out of bounds. Values are never clamped.
    """
    if not invocation.image or not invocation.image.strip():
        raise InvalidInvocationError(detail="Sandbox image must be specified")
    if not invocation.command or not invocation.command.strip():
        raise InvalidInvocationError(detail="Sandbox command must be specified")

    payload = invocation.stdin.encode("utf-8")
    if len(payload) > settings.max_stdin_bytes:
        raise InvalidInvocationError(
            detail=f"Input exceeds maximum size of {settings.max_stdin_bytes} bytes",
            size=len(payload),
        )
    if not settings.min_memory_mb <= invocation.memory_mb <= settings.max_memory_mb:
        raise InvalidInvocationError(
            detail=(
                f"Memory limit {invocation.memory_mb}MB outside "
                f"[{settings.min_memory_mb}, {settings.max_memory_mb}]"
            ),
        )
    if not settings.min_cpus <= invocation.cpus <= settings.max_cpus:
        raise InvalidInvocationError(
            detail=f"CPU limit {invocation.cpus} outside [{settings.min_cpus}, {settings.max_cpus}]",
        )
    if not settings.min_timeout_ms <= invocation.timeout_ms <= settings.max_timeout_ms:
        raise InvalidInvocationError(
            detail=(
                f"Timeout {invocation.timeout_ms}ms outside "
                f"[{settings.min_timeout_ms}, {settings.max_timeout_ms}]"
            ),
        )
    return payload


def build_docker_args(invocation: SandboxInvocation, name: str, settings: SandboxSettings) -> list[str]:
    memory = f"{invocation.memory_mb}m"
    return [
        settings.docker_bin, "run",
        "--rm",
        "-i",
        "--name", name,
        "--label", settings.label,
        "--network", "none",
        "--memory", memory,
        "--memory-swap", memory,
        "--cpus", f"{invocation.cpus}",
        "--pids-limit", str(settings.pids_limit),
        "--ulimit", f"nofile={settings.nofile_limit}:{settings.nofile_limit}",
        "--cap-drop", "ALL",
        "--security-opt", "no-new-privileges:true",
        invocation.image,
        "bash", "-c", invocation.command,
    ]


def _force_remove(loop: asyncio.AbstractEventLoop, docker_bin: str, name: str) -> None:
    """Remove a container whose CLI client was killed. Does not wait."""

    async def _remove() -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                docker_bin, "rm", "-f", name,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await proc.wait()
        except OSError as e:
            _logger.warning("Failed to remove sandbox container %s: %s", name, e)

    task = loop.create_task(_remove())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


async def _reap(proc: asyncio.subprocess.Process, grace_sec: float, name: str) -> None:
    """Wait for a killed process to exit, closing its pipes if it does not."""
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_sec)
    except asyncio.TimeoutError:
        _logger.warning("Sandbox process %s did not exit after kill", name)
        proc._transport.close()


async def run_container(invocation: SandboxInvocation) -> SandboxOutput:
    """Run a single command in a fresh container.

    Returns the captured output. On a non-zero exit with non-empty stderr,
    ``text`` is the stderr; otherwise it is stdout, falling back to stderr.

    Raises:
        InvalidInvocationError: The invocation is outside configured bounds.
        SandboxSpawnError: The docker CLI could not be started.
        SandboxStdinError: Writing the input failed and the process was then killed.
        SandboxOutputLimitError: stdout+stderr exceeded the output cap.
        SandboxTimeoutError: The wall-clock timeout expired.
        SandboxCrashedError: The process was killed or crashed.
    """
    settings = get_settings().sandbox
    payload = validate_invocation(invocation, settings)
    name = f"judge_{uuid.uuid4().hex}"
    args = build_docker_args(invocation, name, settings)

    if get_settings().log.sandbox_debug:
        _logger.debug("Sandbox spawn: name=%s args=%s", name, args[:-1])

    started = time.monotonic()
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise SandboxSpawnError(detail=f"Failed to start sandbox: {e}", image=invocation.image) from e

    loop = asyncio.get_running_loop()
    outcome = _Outcome(loop)
    stdout_buf = bytearray()
    stderr_buf = bytearray()
    received = 0
    killed = False

    def kill() -> None:
        nonlocal killed
        if killed:
            return
        killed = True
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        _force_remove(loop, settings.docker_bin, name)

    def on_timeout() -> None:
        error = SandboxTimeoutError(
            detail=f"Container execution timed out after {invocation.timeout_ms}ms",
            timeout_ms=invocation.timeout_ms,
        )
        if outcome.fail(error):
            kill()

    async def pump(stream: asyncio.StreamReader, buf: bytearray) -> None:
        nonlocal received
        while True:
            chunk = await stream.read(READ_CHUNK_BYTES)
            if not chunk:
                return
            received += len(chunk)
            if received > settings.max_output_bytes:
                error = SandboxOutputLimitError(
                    detail=f"Output exceeded {settings.max_output_bytes} bytes",
                    limit=settings.max_output_bytes,
                )
                if outcome.fail(error):
                    kill()
                return
            buf.extend(chunk)

    async def feed() -> ConnectionError | None:
        # a program may exit without reading all of its input; the exit status decides
        try:
            if payload:
                proc.stdin.write(payload)
                await proc.stdin.drain()
            proc.stdin.close()
        except ConnectionError as e:
            _logger.debug("Sandbox %s closed its input early: %r", name, e)
            return e
        return None

    async def supervise(feeder: asyncio.Task) -> None:
        try:
            await asyncio.gather(pump(proc.stdout, stdout_buf), pump(proc.stderr, stderr_buf))
            returncode = await proc.wait()
            write_error = await feeder
        except Exception as e:
            _logger.exception("Sandbox supervision failed for %s", name)
            if outcome.fail(SandboxError(detail=f"Sandbox supervision failed: {e}")):
                kill()
            return

        if returncode < 0 or returncode == DOCKER_SIGKILL_EXIT:
            if write_error is not None:
                outcome.fail(SandboxStdinError(
                    detail=f"Failed to write input to sandbox: {write_error!r}",
                    exit_code=returncode,
                ))
                return
            outcome.fail(SandboxCrashedError(
                detail=f"Sandbox terminated abnormally (exit code {returncode})",
                exit_code=returncode,
            ))
            return

        stdout = stdout_buf.decode("utf-8", errors="replace")
        stderr = stderr_buf.decode("utf-8", errors="replace")
        if returncode != 0 and stderr:
            text = stderr
        else:
            text = stdout or stderr
        outcome.succeed(SandboxOutput(
            text=text,
            exit_code=returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=int((time.monotonic() - started) * 1000),
        ))

    timer = loop.call_later(invocation.timeout_ms / 1000, on_timeout)
    feeder = loop.create_task(feed())
    tasks = [feeder, loop.create_task(supervise(feeder))]
    try:
        result = await outcome
        _logger.debug(
            "Sandbox execution: image=%s exit=%d duration=%dms",
            invocation.image, result.exit_code, result.duration_ms,
        )
        return result
    except SandboxError as e:
        _logger.info(
            "Sandbox execution failed: image=%s error=%s duration=%dms",
            invocation.image, e.error, int((time.monotonic() - started) * 1000),
        )
        raise
    finally:
        timer.cancel()
        if proc.returncode is None:
            kill()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if proc.returncode is None:
            await _reap(proc, settings.reap_grace_sec, name)


async def is_docker_available(timeout: float = 10) -> bool:
    settings = get_settings().sandbox
    try:
        proc = await asyncio.create_subprocess_exec(
            settings.docker_bin, "version",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        return False
    try:
        return await asyncio.wait_for(proc.wait(), timeout=timeout) == 0
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return False
