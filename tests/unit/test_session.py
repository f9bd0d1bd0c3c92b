"""
Build Session Unit Tests

End-to-end tests: patch, build and run a host with a real extension package
"""

import pytest

from devbuild.build.cleanup import CleanupStack
from devbuild.config import config_from_dict
from devbuild.core.errors import AnchorNotFound, ConfigInvalid, ProcessFailed
from devbuild.runner import INTERRUPTED_EXIT
from devbuild.session import build_artifact, prepare_build, run_session


@pytest.fixture
def config(source_tree):
    return config_from_dict(
        {
            "source": str(source_tree),
            "extensions": [{"key": "yaml", "package": "PyYAML", "after": "log"}],
        }
    )


class TestRunSession:
    """Tests for run_session"""

    def test_patched_host_runs(self, config, tmp_path, directives_file, directives_text):
        """Test the running host sees the patched directives"""
        out = tmp_path / "seen.py"
        cleanup = CleanupStack()
        assert run_session(config, [str(out), "0"], cleanup) == 0
        seen = out.read_text(encoding="utf-8")
        assert '    ("log", log.setup),\n    ("yaml", yaml.setup),\n' in seen
        assert "import yaml\n" in seen
        assert cleanup.done
        assert directives_file.read_text(encoding="utf-8") == directives_text

    def test_failing_host(self, config, tmp_path):
        """Test a non-zero exit is reported with its status"""
        with pytest.raises(ProcessFailed) as exc_info:
            run_session(config, [str(tmp_path / "seen.py"), "4"])
        assert exc_info.value.returncode == 4
        assert exc_info.value.returncode != INTERRUPTED_EXIT

    def test_patch_failure_cleans_up(self, source_tree):
        """Test a failing patch stops the session before anything runs"""
        config = config_from_dict(
            {
                "source": str(source_tree),
                "extensions": [{"key": "yaml", "package": "PyYAML", "after": "proxy"}],
            }
        )
        cleanup = CleanupStack()
        with pytest.raises(AnchorNotFound):
            run_session(config, (), cleanup)
        assert cleanup.done


class TestBuildArtifact:
    """Tests for build_artifact and prepare_build"""

    def test_artifact_written(self, config, tmp_path):
        """Test a standalone artifact with the working copy removed"""
        out = build_artifact(config, tmp_path / "host.pyz")
        assert out.is_file()

    def test_import_path(self, source_tree, tmp_path):
        """Test the host copy is placed under the configured import path"""
        config = config_from_dict(
            {"source": str(source_tree), "import_path": "acme.hostapp"}
        )
        builder = prepare_build(config)
        try:
            assert (builder.workdir / "acme" / "hostapp" / "__main__.py").is_file()
        finally:
            builder.teardown()

    def test_no_source(self):
        """Test a configuration without host tree"""
        with pytest.raises(ConfigInvalid):
            prepare_build(config_from_dict({}))
