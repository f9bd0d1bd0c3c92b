"""
Build sessions

Glue between configuration, build engine and runner: prepare a patched
build, produce an artifact, run it, and release every temporary resource
on the way out.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence, Union

from .build.builder import Builder
from .build.cleanup import CleanupStack
from .config import DevConfig
from .core.errors import ConfigInvalid, ProcessFailed
from .runner import INTERRUPTED_EXIT, run_artifact
from .utils.logging import get_logger

logger = get_logger(__name__)


def prepare_build(config: DevConfig) -> Builder:
    """
    Builder with the patched working copy in place

    On failure the working copy is removed before the error propagates.
    """
    if not config.source:
        raise ConfigInvalid("No host source tree configured")

    builder = Builder.prepare(
        config.source,
        config.coordinator(),
        config.packages,
        use_network=config.use_network,
        python=config.python,
    )
    try:
        builder.setup()
        # `import <import_path>` must reference the patched copy
        builder.set_import_path(config.resolved_import_path())
    except BaseException:
        builder.teardown()
        raise
    return builder


def build_artifact(
    config: DevConfig,
    output: Union[str, Path],
    target_os: str = "",
    target_arch: str = "",
    flags: Sequence[str] = (),
) -> Path:
    """Patch, build and write a single artifact"""
    builder = prepare_build(config)
    try:
        return builder.build(target_os, target_arch, output, *flags)
    finally:
        builder.teardown()


def _remove(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


def run_session(
    config: DevConfig, args: Sequence[str] = (), cleanup: Optional[CleanupStack] = None
) -> int:
    """
    Patch, build to a temporary artifact and run it with ``args``

    Returns:
        0, or INTERRUPTED_EXIT when the run was interrupted

    Raises:
        ProcessFailed: The artifact exited with a non-zero status
    """
    cleanup = cleanup or CleanupStack()
    with cleanup:
        builder = prepare_build(config)
        cleanup.register(builder.teardown)

        fd, artifact = tempfile.mkstemp(prefix="devbuild", suffix=".pyz")
        os.close(fd)
        cleanup.register(_remove, artifact)

        builder.build("", "", artifact)
        logger.info(f"Starting {builder.import_path}...")
        code = asyncio.run(run_artifact(artifact, args, config.python))

    if code not in (0, INTERRUPTED_EXIT):
        raise ProcessFailed(f"{artifact} exited with status {code}", returncode=code)
    return code
