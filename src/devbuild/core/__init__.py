"""devbuild core: errors, models and ordering"""

from .errors import (
    DevBuildError,
    ConfigInvalid,
    ParsePatchFailed,
    AnchorNotFound,
    PackageMetadataFailed,
    BuildFailed,
    ProcessFailed,
)
from .models import Extension, ResolvedAnchor, PatchEntry
from .ordering import DefaultOrderIndex, DEFAULT_ORDER, resolve_anchor, resolve_anchors
from .registry import REGISTRY

__all__ = [
    # Errors
    "DevBuildError",
    "ConfigInvalid",
    "ParsePatchFailed",
    "AnchorNotFound",
    "PackageMetadataFailed",
    "BuildFailed",
    "ProcessFailed",
    # Models
    "Extension",
    "ResolvedAnchor",
    "PatchEntry",
    # Ordering
    "DefaultOrderIndex",
    "DEFAULT_ORDER",
    "resolve_anchor",
    "resolve_anchors",
    "REGISTRY",
]
