"""
Build engine

Materializes a working copy of the host source tree with the extension
packages next to it, hands it to the patch callback, and packs the result
into a zipapp that runs the host package.
"""

import os
import platform
import shutil
import subprocess
import sys
import tempfile
import zipapp
from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from ..core.errors import BuildFailed, ConfigInvalid
from ..utils.logging import get_logger

logger = get_logger(__name__)

PatchCallback = Callable[[str, List[str]], object]

COMPILED_SUFFIXES = (".so", ".pyd", ".dylib")
IGNORED = shutil.ignore_patterns(".git", "__pycache__", "*.pyc")

MAIN_TEMPLATE = """\
import runpy

runpy.run_module({import_path!r}, run_name="__main__", alter_sys=True)
"""


def current_platform() -> Tuple[str, str]:
    """(os, arch) of the running interpreter, lower-cased"""
    return platform.system().lower(), platform.machine().lower()


class Builder:
    """
    Custom build of a host package

    Use ``Builder.prepare``, then ``setup``, ``set_import_path`` and
    ``build``; ``teardown`` removes the working copy.
    """

    def __init__(
        self,
        source: Path,
        patch_callback: Optional[PatchCallback],
        packages: Sequence[str],
        use_network: bool = False,
        python: Optional[str] = None,
    ):
        self.source = source
        self.patch_callback = patch_callback
        self.packages = list(dict.fromkeys(packages))
        self.use_network = use_network
        self.python = python or sys.executable
        self.import_path = source.name
        self.workdir = Path(tempfile.mkdtemp(prefix="devbuild-"))
        self._ready = False

    @classmethod
    def prepare(
        cls,
        source: Union[str, Path],
        patch_callback: Optional[PatchCallback],
        packages: Iterable[str] = (),
        use_network: bool = False,
        python: Optional[str] = None,
    ) -> "Builder":
        """Check the source tree and reserve a working directory"""
        source = Path(source).resolve()
        if not source.is_dir():
            raise ConfigInvalid(
                f"Host source tree not found: {source}", {"source": str(source)}
            )
        return cls(source, patch_callback, list(packages), use_network, python)

    @property
    def host_dir(self) -> Path:
        return self.workdir.joinpath(*self.import_path.split("."))

    def setup(self) -> None:
        """
        Copy the host tree, add the extension packages, run the patch callback

        Errors raised by the callback propagate unchanged.
        """
        try:
            shutil.copytree(self.source, self.host_dir, ignore=IGNORED)
        except OSError as e:
            raise BuildFailed(f"Cannot copy {self.source}: {e}") from e

        if self.use_network:
            self._install_packages()
        else:
            for package in self.packages:
                self._copy_installed(package)

        if self.patch_callback is not None:
            self.patch_callback(str(self.host_dir), list(self.packages))
        self._ready = True
        logger.debug(f"Working copy ready at {self.workdir}")

    def _install_packages(self) -> None:
        if not self.packages:
            return
        cmd = [
            self.python,
            "-m",
            "pip",
            "install",
            "--quiet",
            "--target",
            str(self.workdir),
            *self.packages,
        ]
        logger.info(f"Installing {len(self.packages)} package(s) into the build")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise BuildFailed(f"Cannot run pip: {e}") from e
        if result.returncode != 0:
            raise BuildFailed(
                f"pip install failed: {result.stderr.strip()}",
                {"packages": self.packages, "exit_code": result.returncode},
            )

    def _copy_installed(self, package: str) -> None:
        """Copy an already installed distribution into the working copy"""
        try:
            dist = metadata.distribution(package)
        except metadata.PackageNotFoundError as e:
            raise BuildFailed(
                f"Package '{package}' is not installed", {"package": package}
            ) from e

        copied = 0
        for f in dist.files or ():
            if not f.parts or f.parts[0] == ".." or "__pycache__" in f.parts:
                continue
            src = Path(f.locate())
            if not src.is_file():
                continue
            dest = self.workdir / Path(*f.parts)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dest)
            copied += 1
        logger.debug(f"Copied {copied} file(s) of {package}")

    def set_import_path(self, path: str) -> None:
        """
        Place the host copy so that ``import <path>`` resolves to it

        After ``setup`` the already patched copy is moved.
        """
        if not path or not all(part.isidentifier() for part in path.split(".")):
            raise ConfigInvalid(f"Invalid import path: {path!r}", {"path": path})

        old_dir = self.host_dir
        self.import_path = path
        if not old_dir.exists() or old_dir == self.host_dir:
            return
        self.host_dir.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.move(str(old_dir), str(self.host_dir))
        except OSError as e:
            raise BuildFailed(f"Cannot move host copy to {path}: {e}") from e

    def _check_target(self, target_os: str, target_arch: str) -> None:
        host_os, host_arch = current_platform()
        if (not target_os or target_os == host_os) and (
            not target_arch or target_arch == host_arch
        ):
            return
        for p in self.workdir.rglob("*"):
            if p.suffix in COMPILED_SUFFIXES:
                raise BuildFailed(
                    f"Cannot build for {target_os or host_os}/{target_arch or host_arch}: "
                    f"{p.relative_to(self.workdir)} is compiled for {host_os}/{host_arch}"
                )

    def build(
        self, target_os: str, target_arch: str, output: Union[str, Path], *flags: str
    ) -> Path:
        """
        Write the zipapp artifact

        Args:
            target_os: Target OS, empty for the current one
            target_arch: Target architecture, empty for the current one
            output: Artifact path
            flags: ``--compress`` to deflate the archive

        Returns:
            The artifact path
        """
        if not self._ready:
            raise BuildFailed("Build requested before setup")

        compressed = False
        for flag in flags:
            if flag in ("--compress", "-compress"):
                compressed = True
            else:
                raise BuildFailed(f"Unknown build flag: {flag}")

        self._check_target(target_os, target_arch)
        if not (self.host_dir / "__main__.py").is_file():
            raise BuildFailed(
                f"Host package {self.import_path} has no __main__ module",
                {"import_path": self.import_path},
            )

        output = Path(output)
        main = self.workdir / "__main__.py"
        try:
            main.write_text(
                MAIN_TEMPLATE.format(import_path=self.import_path), encoding="utf-8"
            )
            zipapp.create_archive(
                self.workdir,
                target=output,
                interpreter=self.python,
                compressed=compressed,
                filter=lambda p: "__pycache__" not in p.parts,
            )
        except (OSError, zipapp.ZipAppError) as e:
            raise BuildFailed(f"Cannot write {output}: {e}") from e

        logger.info(f"Built {output}")
        return output

    def build_cross_arch(
        self,
        targets: Iterable[Tuple[str, str]],
        output_dir: Union[str, Path],
        *flags: str,
    ) -> List[Path]:
        """One artifact per (os, arch) pair, named <import_path>_<os>_<arch>.pyz"""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        name = self.import_path.replace(".", "_")
        return [
            self.build(
                target_os, target_arch, output_dir / f"{name}_{target_os}_{target_arch}.pyz", *flags
            )
            for target_os, target_arch in targets
        ]

    def teardown(self) -> None:
        """Remove the working copy"""
        if self.workdir.exists():
            shutil.rmtree(self.workdir, ignore_errors=True)
            logger.debug(f"Removed {self.workdir}")
        self._ready = False
