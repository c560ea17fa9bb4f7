"""Best-effort reclamation of idle sandbox containers, images, volumes and networks.

Nothing here is needed for correctness. Sweeps never block a judging run and
races with concurrent sweeps are harmless since prune only touches idle resources.
"""

import asyncio
import atexit
import logging
import signal
import subprocess
import threading

from judge.config import get_settings

_logger = logging.getLogger("judge.sandbox.cleanup")

_cleanup_registered = False
_terminal_sweep_done = False


def prune_commands() -> list[list[str]]:
    settings = get_settings().sandbox
    docker = settings.docker_bin
    return [
        [docker, "container", "prune", "-f", "--filter", f"label={settings.label}"],
        # dangling only; the judge images themselves must survive
        [docker, "image", "prune", "-f"],
        [docker, "volume", "prune", "-f"],
        [docker, "network", "prune", "-f"],
    ]


def docker_cleanup() -> None:
    """Launch prune commands in the background without waiting for them."""
    for args in prune_commands():
        try:
            subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            _logger.debug("Prune command %s could not start: %s", args[1:3], e)


async def prune_once(timeout: float = 120) -> int:
    """Run every prune command to completion. Returns how many succeeded."""
    succeeded = 0
    for args in prune_commands():
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            _logger.warning("Prune command %s could not start: %s", args[1:3], e)
            continue
        try:
            if await asyncio.wait_for(proc.wait(), timeout=timeout) == 0:
                succeeded += 1
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            _logger.warning("Prune command %s timed out", args[1:3])
    return succeeded


async def run_periodic_cleanup(stop_event: asyncio.Event, interval_sec: float) -> None:
    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_sec)
            return
        except asyncio.TimeoutError:
            pass
        succeeded = await prune_once()
        _logger.info("Periodic sandbox prune finished (%d commands succeeded)", succeeded)


def _terminal_cleanup() -> None:
    global _terminal_sweep_done
    if _terminal_sweep_done:
        return
    _terminal_sweep_done = True
    docker_cleanup()


def _make_signal_handler(previous):
    def handler(signum, frame):
        _logger.info("Received signal %d, pruning sandbox resources", signum)
        _terminal_cleanup()
        if callable(previous):
            previous(signum, frame)
        elif previous != signal.SIG_IGN:
            raise SystemExit(128 + signum)

    return handler


def register_cleanup() -> bool:
    """Install the start-up sweep, exit hook and signal handlers once per process.

    Returns False if they were already installed or cleanup is disabled.
    Existing SIGINT/SIGTERM handlers are chained, not replaced.
    """
    global _cleanup_registered
    if _cleanup_registered:
        return False
    settings = get_settings().cleanup
    if not settings.enabled:
        return False
    _cleanup_registered = True

    if settings.on_start:
        docker_cleanup()
    atexit.register(_terminal_cleanup)

    if threading.current_thread() is threading.main_thread():
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, _make_signal_handler(signal.getsignal(sig)))
    else:
        _logger.debug("Not on the main thread, skipping signal handlers")
    return True
