"""
Ordering resolution

Computes the anchor (the key a new element follows) for each extension.
"""

from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Extension, ResolvedAnchor
from .registry import REGISTRY


class DefaultOrderIndex:
    """
    Immutable key -> position index over an ordered key list

    Built once and passed by reference; nothing mutates it afterwards.
    """

    __slots__ = ("_keys", "_positions")

    def __init__(self, keys: Iterable[str]):
        self._keys: Tuple[str, ...] = tuple(keys)
        positions = {}
        for i, key in enumerate(self._keys):
            positions[key] = i
        self._positions: Mapping[str, int] = MappingProxyType(positions)

    @property
    def keys(self) -> Tuple[str, ...]:
        return self._keys

    def position(self, key: str) -> Optional[int]:
        """Position of key, or None if unknown"""
        return self._positions.get(key)

    def key_at(self, position: int) -> str:
        return self._keys[position]

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"DefaultOrderIndex({list(self._keys)!r})"


DEFAULT_ORDER = DefaultOrderIndex(REGISTRY)


def resolve_anchor(
    key: str,
    after: Optional[str],
    index: DefaultOrderIndex,
    global_after: Optional[str] = None,
) -> Optional[str]:
    """
    Resolve the anchor for one extension

    Precedence: global override, then the extension's own ``after``, then
    the predecessor of ``key`` in the default order. Neither override is
    checked for existence here; the patcher checks against the live file.

    Returns:
        The anchor key, or None to append at the end of the list
    """
    if global_after:
        return global_after
    if after:
        return after

    pos = index.position(key)
    if pos is None or pos <= 0:
        return None
    return index.key_at(pos - 1)


def resolve_anchors(
    extensions: Sequence[Extension],
    index: DefaultOrderIndex,
    global_after: Optional[str] = None,
) -> List[ResolvedAnchor]:
    """Resolve anchors for a batch, in input order"""
    return [
        ResolvedAnchor(
            key=ext.key, anchor=resolve_anchor(ext.key, ext.after, index, global_after)
        )
        for ext in extensions
    ]
