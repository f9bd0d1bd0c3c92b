"""Code generation: splices extensions into the host's directives module"""

from .shape import (
    ListElement,
    ListShape,
    ShapeMismatch,
    SourceSpan,
    inspect_list,
    require_list,
)
from .imports import inject_imports
from .names import resolve_package_names, NAME_TEMPLATE
from .patcher import SourcePatcher, DIRECTIVES_FILE, LIST_NAME, ENTRY_POINT
from .coordinator import PatchCoordinator

__all__ = [
    # Shape
    "ListElement",
    "ListShape",
    "ShapeMismatch",
    "SourceSpan",
    "inspect_list",
    "require_list",
    # Imports
    "inject_imports",
    # Names
    "resolve_package_names",
    "NAME_TEMPLATE",
    # Patcher
    "SourcePatcher",
    "DIRECTIVES_FILE",
    "LIST_NAME",
    "ENTRY_POINT",
    # Coordinator
    "PatchCoordinator",
]
