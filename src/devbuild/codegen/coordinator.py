"""
Patch coordinator

Single entry point the build engine calls once a working copy of the host
source exists: resolve anchors, resolve package names, patch the file.
"""

from functools import partial
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from ..core.errors import ConfigInvalid
from ..core.models import Extension, PatchEntry
from ..core.ordering import DEFAULT_ORDER, DefaultOrderIndex, resolve_anchors
from ..utils.logging import get_logger
from .names import resolve_package_names
from .patcher import DIRECTIVES_FILE, SourcePatcher

logger = get_logger(__name__)

NameResolver = Callable[[Sequence[str]], Dict[str, str]]


class PatchCoordinator:
    """
    Drives ordering resolution, name resolution and patching

    Args:
        extensions: Extensions to register, in order
        after: Global anchor forced for every extension of the run
        order_index: Default order consulted when no anchor is given
        patcher: Source patcher (list name and entry point)
        target_file: Directives module, relative to the source root
        name_resolver: Batch package -> short name lookup
    """

    def __init__(
        self,
        extensions: Sequence[Extension],
        after: Optional[str] = None,
        order_index: DefaultOrderIndex = DEFAULT_ORDER,
        patcher: Optional[SourcePatcher] = None,
        target_file: str = DIRECTIVES_FILE,
        name_resolver: Optional[NameResolver] = None,
        python: Optional[str] = None,
    ):
        self.extensions = list(extensions)
        self.after = after
        self.order_index = order_index
        self.patcher = patcher or SourcePatcher()
        self.target_file = target_file
        self.name_resolver = name_resolver or partial(
            resolve_package_names, python=python
        )

    @property
    def packages(self) -> List[str]:
        """Distinct package references, in first-seen order"""
        return list(dict.fromkeys(ext.package for ext in self.extensions))

    def plan(self) -> List[PatchEntry]:
        """Anchors and qualified names for every extension, in input order"""
        anchors = resolve_anchors(self.extensions, self.order_index, self.after)
        names = self.name_resolver(self.packages)

        entries = []
        for ext, resolved in zip(self.extensions, anchors):
            name = names.get(ext.package)
            if not name:
                raise ConfigInvalid(
                    f"No package name resolved for '{ext.package}'",
                    {"key": ext.key, "package": ext.package},
                )
            entries.append(
                PatchEntry(
                    key=ext.key,
                    anchor=resolved.anchor,
                    package=ext.package,
                    qualified_name=name,
                )
            )
        return entries

    def run(
        self, source_root: Union[str, Path], packages: Optional[Sequence[str]] = None
    ) -> Optional[str]:
        """
        Patch the directives module under ``source_root``

        ``packages`` is the build engine's final extra-package list; it is
        accepted for the callback signature and logged only.

        Returns:
            The final patched text, or None when there is nothing to do
        """
        # no extension, no code generation
        if not self.extensions:
            return None

        if packages:
            logger.debug(f"Extra packages in build: {list(packages)}")

        target = Path(source_root) / self.target_file
        entries = self.plan()
        logger.info(f"Patching {target} with {len(entries)} directive(s)")
        return self.patcher.patch_file(target, entries)

    __call__ = run
