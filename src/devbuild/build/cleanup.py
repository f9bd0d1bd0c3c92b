"""
Cleanup registry

Temporary resources register their release action here. The actions run
once, most recent first, on whichever exit path gets there first.
"""

import threading
from contextlib import ExitStack
from typing import Any, Callable

from ..utils.logging import get_logger

logger = get_logger(__name__)


class CleanupStack:
    """At-most-once cleanup of registered actions"""

    def __init__(self):
        self._stack = ExitStack()
        self._lock = threading.Lock()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def register(self, action: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Register an action; after cleanup has run it executes immediately"""
        with self._lock:
            if not self._done:
                self._stack.callback(action, *args, **kwargs)
                return
        action(*args, **kwargs)

    def run(self) -> None:
        """Run every registered action; later calls do nothing"""
        with self._lock:
            if self._done:
                return
            self._done = True
            stack = self._stack.pop_all()
        logger.debug("Performing cleanup")
        stack.close()

    def __enter__(self) -> "CleanupStack":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.run()
