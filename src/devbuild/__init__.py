"""
devbuild - custom builds of a host application with extra directives

Splices extensions into the host's ordered directive table, builds a
zipapp of the patched host and runs it for local iteration.
"""

__version__ = "0.1.0"

from .core import (
    # Errors
    DevBuildError,
    ConfigInvalid,
    ParsePatchFailed,
    AnchorNotFound,
    PackageMetadataFailed,
    BuildFailed,
    ProcessFailed,
    # Models
    Extension,
    DefaultOrderIndex,
    DEFAULT_ORDER,
    resolve_anchor,
)
from .codegen import PatchCoordinator, SourcePatcher, resolve_package_names
from .config import DevConfig, load_config

__all__ = [
    "__version__",
    # Errors
    "DevBuildError",
    "ConfigInvalid",
    "ParsePatchFailed",
    "AnchorNotFound",
    "PackageMetadataFailed",
    "BuildFailed",
    "ProcessFailed",
    # Core
    "Extension",
    "DefaultOrderIndex",
    "DEFAULT_ORDER",
    "resolve_anchor",
    # Code generation
    "PatchCoordinator",
    "SourcePatcher",
    "resolve_package_names",
    # Config
    "DevConfig",
    "load_config",
]
