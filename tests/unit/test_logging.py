"""
Logging Unit Tests

Tests for module loggers and the console handler
"""

import logging

import pytest

from devbuild.build import builder
from devbuild.codegen import names, patcher
from devbuild.utils.logging import configure_logging, get_logger


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if getattr(handler, "_devbuild", False):
            root.removeHandler(handler)
    root.setLevel(level)


class TestGetLogger:
    """Tests for get_logger"""

    def test_module_loggers(self):
        """Test modules log under their own dotted name"""
        assert patcher.logger is get_logger("devbuild.codegen.patcher")
        assert names.logger.name == "devbuild.codegen.names"
        assert builder.logger.name == "devbuild.build.builder"


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_single_handler(self, root_handlers):
        """Test reconfiguring replaces the previous handler"""
        configure_logging("INFO")
        configure_logging("DEBUG")
        ours = [h for h in root_handlers.handlers if getattr(h, "_devbuild", False)]
        assert len(ours) == 1
        assert root_handlers.level == logging.DEBUG
