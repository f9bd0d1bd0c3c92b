"""
Shared fixtures: a minimal host source tree with a directives module
"""

from pathlib import Path

import pytest

DIRECTIVES = '''"""Directive registration order."""

from hostapp.middleware import log
import hostapp.middleware.gzip as gzip

directive_order = [
    ("log", log.setup),
    ("gzip", gzip.setup),
    ("errors", errors.setup),
]
'''

HOST_MAIN = '''import pkgutil
import sys

text = pkgutil.get_data("hostapp", "config/directives.py").decode("utf-8")
if len(sys.argv) > 1:
    with open(sys.argv[1], "w", encoding="utf-8") as f:
        f.write(text)
sys.exit(int(sys.argv[2]) if len(sys.argv) > 2 else 0)
'''


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """hostapp/ package with config/directives.py and a __main__"""
    root = tmp_path / "hostapp"
    (root / "config").mkdir(parents=True)
    (root / "__init__.py").write_text("", encoding="utf-8")
    (root / "config" / "__init__.py").write_text("", encoding="utf-8")
    (root / "config" / "directives.py").write_text(DIRECTIVES, encoding="utf-8")
    (root / "__main__.py").write_text(HOST_MAIN, encoding="utf-8")
    return root


@pytest.fixture
def directives_file(source_tree: Path) -> Path:
    return source_tree / "config" / "directives.py"


@pytest.fixture
def fake_names():
    """Name resolver stand-in: distribution name -> module name"""

    def resolve(packages):
        return {p: p.replace("-", "_").lower() for p in packages}

    return resolve


@pytest.fixture
def directives_text() -> str:
    return DIRECTIVES
