"""
Source patcher

Splices new ("key", name.setup) elements into the directives list, one
extension at a time. Every splice is re-parsed before it is written, so the
file on disk is valid source after each step and, on failure, holds exactly
the splices that succeeded before it.
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from ..core.errors import AnchorNotFound, ParsePatchFailed
from ..core.models import PatchEntry
from ..utils.logging import get_logger
from .imports import detect_newline, inject_imports
from .shape import ListElement, ListShape, parse_source, require_list

logger = get_logger(__name__)

LIST_NAME = "directive_order"
ENTRY_POINT = "setup"
DIRECTIVES_FILE = "config/directives.py"

Edit = Tuple[int, str]


def read_source(path: Union[str, Path]) -> str:
    """Read text without newline translation"""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_source(path: Union[str, Path], text: str) -> None:
    """Overwrite path with text, without newline translation"""
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def apply_edits(text: str, edits: Sequence[Edit]) -> str:
    """Apply (offset, insertion) edits, highest offset first"""
    for offset, insertion in sorted(edits, key=lambda e: e[0], reverse=True):
        text = text[:offset] + insertion + text[offset:]
    return text


def _line_start(text: str, offset: int) -> int:
    return max(text.rfind("\n", 0, offset), text.rfind("\r", 0, offset)) + 1


def _line_end(text: str, offset: int) -> Tuple[int, int]:
    """Offset of the newline ending the line at ``offset``, and its length"""
    for i in range(offset, len(text)):
        if text[i] == "\n":
            return i, 1
        if text[i] == "\r":
            return i, 2 if text[i + 1 : i + 2] == "\n" else 1
    return len(text), 0


def _indent_of(text: str, offset: int) -> str:
    """Indentation that lines up a new element with the one at ``offset``"""
    prefix = text[_line_start(text, offset) : offset]
    if not prefix.strip():
        return prefix
    return " " * len(prefix)


def _comma_after(text: str, start: int, stop: int) -> Optional[int]:
    """Offset of the separating comma in text[start:stop], skipping comments"""
    i = start
    while i < stop:
        ch = text[i]
        if ch == ",":
            return i
        if ch == "#":
            end, _ = _line_end(text, i)
            i = end
            continue
        i += 1
    return None


class SourcePatcher:
    """
    Patches the directives module of a host source tree

    Args:
        list_name: Module-level name bound to the ordered list
        entry_point: Attribute selected on each extension's module
    """

    def __init__(self, list_name: str = LIST_NAME, entry_point: str = ENTRY_POINT):
        self.list_name = list_name
        self.entry_point = entry_point

    def element_text(self, entry: PatchEntry) -> str:
        # a JSON string is also a valid Python string literal
        return f"({json.dumps(entry.key)}, {entry.qualified_name}.{self.entry_point})"

    def add_imports(self, text: str, entries: Sequence[PatchEntry]) -> str:
        """Step A: one import clause per extension, without duplicates"""
        return inject_imports(
            text, [entry.qualified_name for entry in entries], self.list_name
        )

    def splice(self, text: str, entry: PatchEntry) -> str:
        """
        Step B for a single entry

        Re-locates the list in ``text``, inserts the new element after its
        anchor (or last when there is none) and checks the result still
        parses.

        Raises:
            ParsePatchFailed: The list is missing or misshapen
            AnchorNotFound: The anchor is not a direct element of the list
        """
        tree = parse_source(text)
        shape = require_list(text, self.list_name, tree)
        element = self.element_text(entry)
        eol = detect_newline(text)

        if entry.anchor is None:
            edits = self._append_edits(text, shape, element, eol)
        else:
            anchor = shape.find(entry.anchor)
            if anchor is None:
                raise AnchorNotFound(
                    entry.anchor, {"key": entry.key, "existing": shape.keys}
                )
            edits = self._after_edits(text, shape, anchor, element, eol)

        out = apply_edits(text, edits)
        try:
            parse_source(out)
        except ParsePatchFailed as e:
            raise ParsePatchFailed(
                f"Inserting '{entry.key}' produced invalid source: {e.message}",
                {"key": entry.key},
            ) from e
        return out

    def _append_edits(
        self, text: str, shape: ListShape, element: str, eol: str
    ) -> List[Edit]:
        close = shape.close_offset
        line_start = _line_start(text, close)
        last = shape.elements[-1] if shape.elements else None
        edits: List[Edit] = []

        # closing bracket on its own line: new element gets its own line
        if not text[line_start:close].strip():
            if last is None:
                indent = text[line_start:close] + "    "
            else:
                indent = _indent_of(text, last.span.start)
                if _comma_after(text, last.span.end, close) is None:
                    edits.append((last.span.end, ","))
            edits.append((line_start, f"{indent}{element},{eol}"))
            return edits

        if last is None:
            edits.append((close, element))
            return edits
        comma = _comma_after(text, last.span.end, close)
        if comma is None:
            edits.append((last.span.end, f", {element}"))
        else:
            edits.append((comma + 1, f" {element},"))
        return edits

    def _after_edits(
        self,
        text: str,
        shape: ListShape,
        anchor: ListElement,
        element: str,
        eol: str,
    ) -> List[Edit]:
        pos = shape.elements.index(anchor)
        if pos + 1 < len(shape.elements):
            stop = shape.elements[pos + 1].span.start
        else:
            stop = shape.close_offset

        comma = _comma_after(text, anchor.span.end, stop)
        resume = comma + 1 if comma is not None else anchor.span.end
        line_end, eol_len = _line_end(text, resume)
        rest = text[resume:line_end].strip()
        edits: List[Edit] = []

        # anchor ends its line: new element goes on the following line
        if (not rest or rest.startswith("#")) and line_end < stop:
            if comma is None:
                edits.append((anchor.span.end, ","))
            indent = _indent_of(text, anchor.span.start)
            edits.append((line_end + eol_len, f"{indent}{element},{eol}"))
            return edits

        if comma is None:
            edits.append((anchor.span.end, f", {element}"))
        else:
            edits.append((comma + 1, f" {element},"))
        return edits

    def patch_file(self, path: Union[str, Path], entries: Sequence[PatchEntry]) -> str:
        """
        Patch the file at ``path`` in place

        Imports are added first; each element splice is then persisted
        before the next one starts. The imports reach the disk together with
        the first successful splice.

        Returns:
            The final persisted text
        """
        path = Path(path)
        if not path.is_file():
            raise ParsePatchFailed(f"Directives file not found: {path}", {"path": str(path)})

        text = read_source(path)
        parse_source(text, str(path))
        text = self.add_imports(text, entries)

        for entry in entries:
            text = self.splice(text, entry)
            write_source(path, text)
            where = f"after '{entry.anchor}'" if entry.anchor else "at the end"
            logger.info(f"Inserted directive '{entry.key}' {where}")

        return text
