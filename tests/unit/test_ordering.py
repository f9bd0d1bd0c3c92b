"""
Ordering Unit Tests

Tests for anchor resolution against the default directive order
"""

import pytest

from devbuild.core.models import Extension
from devbuild.core.ordering import (
    DEFAULT_ORDER,
    DefaultOrderIndex,
    resolve_anchor,
    resolve_anchors,
)
from devbuild.core.registry import REGISTRY

ORDER = [
    "log",
    "gzip",
    "errors",
    "header",
    "rewrite",
    "redir",
    "ext",
    "basicauth",
    "internal",
    "proxy",
    "fastcgi",
    "websocket",
    "markdown",
]


@pytest.fixture
def index() -> DefaultOrderIndex:
    return DefaultOrderIndex(ORDER)


class TestDefaultOrderIndex:
    """Tests for the immutable order index"""

    def test_positions(self, index):
        """Test every key maps to its position"""
        for i, key in enumerate(ORDER):
            assert index.position(key) == i
            assert index.key_at(i) == key

    def test_unknown_key(self, index):
        """Test unknown key has no position"""
        assert index.position("ratelimit") is None
        assert "ratelimit" not in index
        assert "log" in index

    def test_len_and_keys(self, index):
        """Test length and key order"""
        assert len(index) == len(ORDER)
        assert index.keys == tuple(ORDER)

    def test_positions_read_only(self, index):
        """Test the position mapping cannot be mutated"""
        with pytest.raises(TypeError):
            index._positions["ratelimit"] = 1

    def test_default_order_from_registry(self):
        """Test module default is built from the registry"""
        assert DEFAULT_ORDER.keys == REGISTRY


class TestResolveAnchor:
    """Tests for single anchor resolution"""

    @pytest.mark.parametrize(
        "key,prev",
        [
            ("log", None),
            ("gzip", "log"),
            ("errors", "gzip"),
            ("header", "errors"),
            ("rewrite", "header"),
            ("redir", "rewrite"),
            ("ext", "redir"),
            ("basicauth", "ext"),
            ("internal", "basicauth"),
            ("proxy", "internal"),
            ("fastcgi", "proxy"),
            ("websocket", "fastcgi"),
            ("markdown", "websocket"),
        ],
    )
    def test_previous_directive(self, index, key, prev):
        """Test default placement follows the previous registry entry"""
        assert resolve_anchor(key, None, index) == prev

    def test_unknown_key_appends(self, index):
        """Test a key outside the default order appends"""
        assert resolve_anchor("ratelimit", None, index) is None

    def test_explicit_after(self, index):
        """Test explicit after wins over the default order"""
        assert resolve_anchor("gzip", "proxy", index) == "proxy"

    def test_explicit_after_not_validated(self, index):
        """Test explicit after is returned even if unknown"""
        assert resolve_anchor("ratelimit", "nope", index) == "nope"

    def test_global_override_wins(self, index):
        """Test global override beats explicit after and default order"""
        assert resolve_anchor("gzip", "proxy", index, global_after="redir") == "redir"
        assert resolve_anchor("log", None, index, global_after="redir") == "redir"

    def test_empty_strings_are_unset(self, index):
        """Test empty override and after fall through to the default order"""
        assert resolve_anchor("gzip", "", index, global_after="") == "log"


class TestResolveAnchors:
    """Tests for batch resolution"""

    def test_batch_keeps_input_order(self, index):
        """Test anchors come back in input order"""
        extensions = [
            Extension(key="ratelimit", package="hostapp-ratelimit"),
            Extension(key="gzip", package="hostapp-gzip"),
            Extension(key="cors", package="hostapp-cors", after="header"),
        ]
        anchors = resolve_anchors(extensions, index)
        assert [(a.key, a.anchor) for a in anchors] == [
            ("ratelimit", None),
            ("gzip", "log"),
            ("cors", "header"),
        ]

    def test_batch_global_override(self, index):
        """Test global override applies to every extension"""
        extensions = [
            Extension(key="ratelimit", package="a"),
            Extension(key="cors", package="b", after="header"),
        ]
        anchors = resolve_anchors(extensions, index, global_after="log")
        assert [a.anchor for a in anchors] == ["log", "log"]
