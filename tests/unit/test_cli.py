"""
CLI Unit Tests

Tests for the devbuild command line
"""

import json
import logging

import pytest
from click.testing import CliRunner

from devbuild import __version__
from devbuild.cli import cli, exit_if_err
from devbuild.core.errors import ConfigInvalid, ProcessFailed


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("DEVBUILD_SOURCE", "DEVBUILD_AFTER", "DEVBUILD_IMPORT_PATH"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def drop_cli_handler():
    yield
    # the CLI's handler writes to CliRunner's stream, closed by now
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_devbuild", False):
            root.removeHandler(handler)


def write_config(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestOrderCommand:
    """Tests for `devbuild order`"""

    def test_default_registry(self, runner):
        """Test each directive is listed with its predecessor"""
        result = runner.invoke(cli, ["order"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "  - root (after: -)"
        assert lines[1] == "  - bind (after: root)"

    def test_custom_order(self, runner, tmp_path):
        """Test the order from a config file"""
        cfg = write_config(tmp_path / "m.json", {"default_order": ["a", "b"]})
        result = runner.invoke(cli, ["order", "-c", cfg])
        assert result.exit_code == 0
        assert result.output.splitlines() == ["  - a (after: -)", "  - b (after: a)"]


class TestPatchCommand:
    """Tests for `devbuild patch`"""

    def test_patch(self, runner, tmp_path, source_tree, directives_file):
        """Test the directives module is patched in place"""
        cfg = write_config(
            tmp_path / "m.json",
            {"directive": "yaml", "import": "PyYAML", "after": "log"},
        )
        result = runner.invoke(cli, ["patch", "-c", cfg, str(source_tree)])
        assert result.exit_code == 0, result.output
        assert "Patched:" in result.output
        assert '("yaml", yaml.setup),' in directives_file.read_text(encoding="utf-8")

    def test_nothing_to_patch(self, runner, tmp_path, source_tree):
        """Test a config without extensions"""
        cfg = write_config(tmp_path / "m.json", {})
        result = runner.invoke(cli, ["patch", "-c", cfg, str(source_tree)])
        assert result.exit_code == 0
        assert "nothing to patch" in result.output

    def test_anchor_not_found(self, runner, tmp_path, source_tree):
        """Test an unknown anchor exits non-zero with its message"""
        cfg = write_config(
            tmp_path / "m.json",
            {"directive": "yaml", "import": "PyYAML", "after": "proxy"},
        )
        result = runner.invoke(cli, ["patch", "-c", cfg, str(source_tree)])
        assert result.exit_code == 1
        assert "Directive 'proxy' not found." in result.output

    def test_missing_config(self, runner, tmp_path, source_tree):
        """Test a missing config file"""
        result = runner.invoke(
            cli, ["patch", "-c", str(tmp_path / "none.json"), str(source_tree)]
        )
        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestBuildCommand:
    """Tests for `devbuild build`"""

    def test_build(self, runner, tmp_path, source_tree):
        """Test an artifact is written"""
        cfg = write_config(tmp_path / "m.json", {"source": str(source_tree)})
        out = tmp_path / "host.pyz"
        result = runner.invoke(cli, ["build", "-c", cfg, "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert out.is_file()
        assert f"Built: {out}" in result.output


class TestRunCommand:
    """Tests for `devbuild run`"""

    def test_exit_status_forwarded(self, runner, tmp_path, source_tree):
        """Test the host's failure status becomes the CLI's"""
        cfg = write_config(tmp_path / "m.json", {"source": str(source_tree)})
        result = runner.invoke(
            cli, ["run", "-c", cfg, str(tmp_path / "seen.py"), "5"]
        )
        assert result.exit_code == 5
        assert (tmp_path / "seen.py").is_file()


def test_version(runner):
    """Test --version"""
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestExitIfErr:
    """Tests for error exit statuses"""

    @pytest.mark.parametrize(
        "err, status",
        [
            (ConfigInvalid("bad config"), 1),
            (ProcessFailed("exited", returncode=3), 3),
            (ProcessFailed("terminated", returncode=-15), 143),
            (ProcessFailed("killed", returncode=-9), 137),
        ],
    )
    def test_status(self, capsys, err, status):
        """Test the exit status, signal deaths mapped to 128 + N"""
        with pytest.raises(SystemExit) as exc_info:
            exit_if_err(err)
        assert exc_info.value.code == status
        assert f"Error: {err.message}" in capsys.readouterr().err
