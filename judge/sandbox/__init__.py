from judge.sandbox.cleanup import register_cleanup, run_periodic_cleanup
from judge.sandbox.runner import (
    SandboxInvocation,
    SandboxOutput,
    is_docker_available,
    run_container,
)

__all__ = [
    "SandboxInvocation",
    "SandboxOutput",
    "is_docker_available",
    "register_cleanup",
    "run_container",
    "run_periodic_cleanup",
]
