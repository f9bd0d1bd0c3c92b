"""
Process runner

Runs the built artifact as a child process while waiting on SIGINT/SIGTERM.
An interrupt terminates the child; the exit status is returned either way.
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from .core.errors import ProcessFailed
from .utils.logging import get_logger

logger = get_logger(__name__)

INTERRUPTED_EXIT = 130
TERMINATE_GRACE_SECONDS = 5.0


async def run_artifact(
    artifact: Union[str, Path],
    args: Sequence[str] = (),
    python: Optional[str] = None,
    signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM),
    grace: float = TERMINATE_GRACE_SECONDS,
) -> int:
    """
    Run ``artifact`` with ``args`` and block until it exits or is interrupted

    The child inherits stdin/stdout/stderr.

    Returns:
        The child's exit status, or INTERRUPTED_EXIT after an interrupt
    """
    loop = asyncio.get_running_loop()
    interrupted = asyncio.Event()

    installed = []
    for sig in signals:
        try:
            loop.add_signal_handler(sig, interrupted.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Cannot trap signal {sig} on this platform")

    try:
        try:
            proc = await asyncio.create_subprocess_exec(
                python or sys.executable, str(artifact), *args
            )
        except OSError as e:
            raise ProcessFailed(f"Cannot start {artifact}: {e}", returncode=127) from e

        wait_task = asyncio.ensure_future(proc.wait())
        interrupt_task = asyncio.ensure_future(interrupted.wait())
        done, _ = await asyncio.wait(
            {wait_task, interrupt_task}, return_when=asyncio.FIRST_COMPLETED
        )

        if wait_task in done:
            interrupt_task.cancel()
            return wait_task.result()

        logger.info("OS Interrupt signal received. Performing cleanup...")
        if proc.returncode is None:
            proc.terminate()
        try:
            await asyncio.wait_for(wait_task, timeout=grace)
        except asyncio.TimeoutError:
            proc.kill()
            await wait_task
        return INTERRUPTED_EXIT
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
