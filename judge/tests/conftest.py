import os
import stat
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest

from judge.config import clear_settings_cache
from judge.sandbox import SandboxOutput

# Stand-in for the docker CLI: "run" executes the trailing `bash -c` command
# locally with /bin/sh, every other subcommand succeeds without doing anything.
FAKE_DOCKER = """#!/bin/sh
if [ "$1" = "run" ]; then
    for last; do :; done
    exec /bin/sh -c "$last"
fi
exit 0
"""


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    monkeypatch.setenv("CLEANUP_ENABLED", "0")
    monkeypatch.delenv("POSTGRES_ENABLED", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def fake_docker(tmp_path, monkeypatch):
    path = tmp_path / "docker"
    path.write_text(FAKE_DOCKER)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("SANDBOX_DOCKER_BIN", str(path))
    monkeypatch.setenv("JUDGE_TEMP_DIR", str(tmp_path))
    clear_settings_cache()
    return path


def make_output(text: str = "", exit_code: int = 0, stderr: str = "") -> SandboxOutput:
    return SandboxOutput(
        text=text,
        exit_code=exit_code,
        stdout="" if exit_code and stderr else text,
        stderr=stderr,
        duration_ms=1,
    )


class FakeSandbox:
    """Replaces run_container in the compile and execution stages.

    ``compile_output`` is returned for the compile step. ``runs`` maps a
    testcase input to either a SandboxOutput or an exception to raise.
    """

    def __init__(self, compile_output=None, runs=None, default=None):
        self.compile_output = compile_output or make_output("Compilation successful\n")
        self.runs = runs or {}
        self.default = default
        self.compile_calls = []
        self.run_calls = []

    async def compile(self, invocation):
        self.compile_calls.append(invocation)
        if isinstance(self.compile_output, Exception):
            raise self.compile_output
        return self.compile_output

    async def run(self, invocation):
        self.run_calls.append(invocation)
        result = self.runs.get(invocation.stdin, self.default)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_sandbox(monkeypatch):
    import judge.compiler as compiler
    import judge.executor as executor

    sandbox = FakeSandbox()
    monkeypatch.setattr(compiler, "run_container", sandbox.compile)
    monkeypatch.setattr(executor, "run_container", sandbox.run)
    return sandbox
