"""
devbuild exceptions

Every failure of a patch/build/run cycle is one of the typed errors below.
None of them is retried internally.
"""

from typing import Any, Dict, Optional


class DevBuildError(Exception):
    """devbuild base exception"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigInvalid(DevBuildError):
    """
    Configuration error

    Malformed or missing extension entry, unreadable config file,
    or a source reference that does not resolve.
    """
    pass


class ParsePatchFailed(DevBuildError):
    """
    Patch error

    The target file does not parse, the well-known list declaration is
    missing or not shaped as expected, or a splice produced invalid source.
    """
    pass


class AnchorNotFound(DevBuildError):
    """
    Anchor error

    The key an extension should follow is not an element of the live list.
    """

    def __init__(self, key: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Directive '{key}' not found.", details)
        self.key = key


class PackageMetadataFailed(DevBuildError):
    """
    Package name query error

    The batched metadata query exited non-zero or returned fewer names
    than requested.
    """
    pass


class BuildFailed(DevBuildError):
    """Working copy, package materialization or artifact build failed"""
    pass


class ProcessFailed(DevBuildError):
    """The built artifact exited with a non-zero status"""

    def __init__(
        self, message: str, returncode: int, details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.returncode = returncode
