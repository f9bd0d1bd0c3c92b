"""
Structural validation of the directives module

Translates the parsed module into a ListShape (one record per element with
its key, value and source span) or a ShapeMismatch explaining why the file
is not in the expected form. Everything downstream works on ListShape and
character offsets; ``ast`` is only touched here.
"""

import ast
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from ..core.errors import ParsePatchFailed

_NEWLINE_RX = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class SourceSpan:
    """Half-open [start, end) character range in the source text"""

    start: int
    end: int


@dataclass(frozen=True)
class ListElement:
    """One ("key", qualified.reference) element of the list literal"""

    key: str
    value: str
    span: SourceSpan


@dataclass(frozen=True)
class ListShape:
    """
    The well-known list declaration, located in the current text

    Attributes:
        name: Bound name of the list
        elements: Direct child elements in source order
        open_offset: Offset of the opening bracket
        close_offset: Offset of the closing bracket
    """

    name: str
    elements: Tuple[ListElement, ...]
    open_offset: int
    close_offset: int

    def find(self, key: str) -> Optional[ListElement]:
        """First direct child whose key equals ``key``"""
        for element in self.elements:
            if element.key == key:
                return element
        return None

    @property
    def keys(self) -> List[str]:
        return [element.key for element in self.elements]


@dataclass(frozen=True)
class ShapeMismatch:
    """Why the source is not in the expected shape"""

    reason: str


class LineIndex:
    """Maps ast (lineno, utf-8 byte column) positions to string offsets"""

    def __init__(self, text: str):
        self.text = text
        self.line_starts = [0]
        for match in _NEWLINE_RX.finditer(text):
            self.line_starts.append(match.end())

    def offset(self, lineno: int, col: int) -> int:
        start = self.line_starts[lineno - 1]
        if lineno < len(self.line_starts):
            end = self.line_starts[lineno]
        else:
            end = len(self.text)
        line = self.text[start:end]
        prefix = line.encode("utf-8")[:col].decode("utf-8", errors="replace")
        return start + len(prefix)

    def span(self, node: ast.AST) -> SourceSpan:
        return SourceSpan(
            self.offset(node.lineno, node.col_offset),
            self.offset(node.end_lineno, node.end_col_offset),
        )


def parse_source(text: str, filename: str = "<directives>") -> ast.Module:
    """Parse text, raising ParsePatchFailed instead of SyntaxError"""
    try:
        return ast.parse(text, filename=filename)
    except (SyntaxError, ValueError) as e:
        raise ParsePatchFailed(
            f"Cannot parse {filename}: {e}", {"filename": filename}
        ) from e


def dotted_name(node: ast.AST) -> Optional[str]:
    """'a.b.c' for a Name/Attribute chain, None for anything else"""
    parts = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def bound_value(stmt: ast.stmt, name: str) -> Tuple[bool, Optional[ast.expr]]:
    """Whether a module-level statement binds ``name``, and to what"""
    if isinstance(stmt, ast.Assign):
        for target in stmt.targets:
            if isinstance(target, ast.Name) and target.id == name:
                return True, stmt.value
    elif isinstance(stmt, ast.AnnAssign):
        if isinstance(stmt.target, ast.Name) and stmt.target.id == name:
            return True, stmt.value
    return False, None


def _element(node: ast.expr, index: LineIndex) -> Union[ListElement, ShapeMismatch]:
    if not isinstance(node, (ast.Tuple, ast.List)) or len(node.elts) != 2:
        return ShapeMismatch(
            f"element at line {node.lineno} is not a two-field literal"
        )
    key_node, value_node = node.elts
    if not isinstance(key_node, ast.Constant) or not isinstance(key_node.value, str):
        return ShapeMismatch(f"element at line {node.lineno} has no quoted key")
    value = dotted_name(value_node)
    if value is None:
        return ShapeMismatch(
            f"element at line {node.lineno} has no qualified reference"
        )
    return ListElement(key=key_node.value, value=value, span=index.span(node))


def inspect_list(
    text: str, list_name: str, tree: Optional[ast.Module] = None
) -> Union[ListShape, ShapeMismatch]:
    """
    Locate and validate the module-level list declaration

    Args:
        text: Current source text
        list_name: Name the list is bound to
        tree: Already parsed module for ``text``, if available

    Returns:
        ListShape on success, ShapeMismatch otherwise
    """
    if tree is None:
        try:
            tree = ast.parse(text)
        except (SyntaxError, ValueError) as e:
            return ShapeMismatch(f"source does not parse: {e}")

    values = []
    for stmt in tree.body:
        bound, value = bound_value(stmt, list_name)
        if bound:
            values.append(value)

    if not values:
        return ShapeMismatch(f"no module-level declaration of '{list_name}'")
    if len(values) > 1:
        return ShapeMismatch(f"'{list_name}' is declared {len(values)} times")

    value = values[0]
    if not isinstance(value, ast.List):
        return ShapeMismatch(f"'{list_name}' is not bound to a list literal")

    index = LineIndex(text)
    elements = []
    for node in value.elts:
        element = _element(node, index)
        if isinstance(element, ShapeMismatch):
            return element
        elements.append(element)

    span = index.span(value)
    return ListShape(
        name=list_name,
        elements=tuple(elements),
        open_offset=span.start,
        close_offset=span.end - 1,
    )


def require_list(
    text: str, list_name: str, tree: Optional[ast.Module] = None
) -> ListShape:
    """inspect_list, raising ParsePatchFailed on a mismatch"""
    shape = inspect_list(text, list_name, tree)
    if isinstance(shape, ShapeMismatch):
        raise ParsePatchFailed(
            f"Error creating custom build, check settings: {shape.reason}",
            {"list_name": list_name, "reason": shape.reason},
        )
    return shape
