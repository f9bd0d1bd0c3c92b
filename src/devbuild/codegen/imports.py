"""
Import injection

Adds ``import <name>`` clauses to the directives module. Existing clauses
are left alone, so injecting the same name twice is a no-op.
"""

import ast
from typing import Iterable, List, Optional, Set

from ..utils.logging import get_logger
from .shape import LineIndex, bound_value, parse_source

logger = get_logger(__name__)


def _preceding(tree: ast.Module, list_name: Optional[str]) -> List[ast.stmt]:
    """Module-level statements before the ``list_name`` declaration"""
    if list_name:
        for i, stmt in enumerate(tree.body):
            if bound_value(stmt, list_name)[0]:
                return tree.body[:i]
    return tree.body


def existing_imports(tree: ast.Module, list_name: Optional[str] = None) -> Set[str]:
    """
    Names imported by plain module-level ``import x`` statements

    With ``list_name``, only imports bound before the declaration count.
    """
    names = set()
    for stmt in _preceding(tree, list_name):
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                if alias.asname is None or alias.asname == alias.name:
                    names.add(alias.name)
    return names


def _insert_line(tree: ast.Module, text: str, list_name: Optional[str]) -> int:
    """1-based line before which new imports go"""
    last_import = None
    for stmt in _preceding(tree, list_name):
        if isinstance(stmt, (ast.Import, ast.ImportFrom)):
            last_import = stmt
    if last_import is not None:
        return last_import.end_lineno + 1

    # module docstring
    if (
        tree.body
        and isinstance(tree.body[0], ast.Expr)
        and isinstance(tree.body[0].value, ast.Constant)
        and isinstance(tree.body[0].value.value, str)
    ):
        return tree.body[0].end_lineno + 1

    # shebang, encoding cookie, license comments
    lineno = 1
    for line in text.splitlines():
        if not line.startswith("#"):
            break
        lineno += 1
    return lineno


def detect_newline(text: str) -> str:
    for eol in ("\r\n", "\n", "\r"):
        if eol in text:
            return eol
    return "\n"


def inject_imports(
    text: str,
    names: Iterable[str],
    list_name: Optional[str] = None,
    filename: str = "<directives>",
) -> str:
    """
    Ensure ``import <name>`` exists for every name

    New clauses are inserted as one block after the last module-level import
    that precedes the ``list_name`` declaration. The result is parsed once
    to make sure it is still valid source.

    Returns:
        The updated text (``text`` itself when nothing was missing)
    """
    tree = parse_source(text, filename)
    present = existing_imports(tree, list_name)

    missing: List[str] = []
    for name in names:
        if name in present or name in missing:
            continue
        missing.append(name)
    if not missing:
        return text

    eol = detect_newline(text)
    index = LineIndex(text)
    lineno = _insert_line(tree, text, list_name)
    if lineno <= len(index.line_starts):
        offset = index.line_starts[lineno - 1]
    else:
        offset = len(text)

    block = "".join(f"import {name}{eol}" for name in missing)
    if offset == len(text) and text and not text.endswith(("\n", "\r")):
        block = eol + block

    out = text[:offset] + block + text[offset:]
    parse_source(out, filename)
    for name in missing:
        logger.debug(f"Added import {name}")
    return out
