"""Tests for structflow package import and basic smoke tests."""

import importlib
import subprocess
import sys

import pytest


class TestImport:
    """Test that structflow can be imported."""

    def test_import_structflow(self) -> None:
        import structflow

        assert hasattr(structflow, "__version__")

    def test_version_exists(self) -> None:
        """Test that __version__ is a non-empty string."""
        import structflow

        assert isinstance(structflow.__version__, str)
        assert len(structflow.__version__) > 0

    def test_reimport(self) -> None:
        import structflow

        importlib.reload(structflow)
        assert structflow.__version__

    def test_public_api(self) -> None:
        """The main entry points are exported at top level."""
        import structflow

        for name in structflow.__all__:
            assert hasattr(structflow, name), name


class TestCLISmoke:
    """CLI smoke tests for the structflow package."""

    @pytest.mark.skipif(
        subprocess.run(
            [sys.executable, "-m", "pip", "show", "structflow"],
            capture_output=True,
        ).returncode != 0,
        reason="structflow not installed via pip (run 'pip install -e .')",
    )
    def test_pip_show(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "pip", "show", "structflow"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "structflow" in result.stdout.lower()

    def test_python_c_version(self) -> None:
        """Test that version string is valid semver-like."""
        result = subprocess.run(
            [sys.executable, "-c", "import structflow; print(structflow.__version__)"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        parts = result.stdout.strip().split(".")
        assert len(parts) >= 3, f"Version {result.stdout!r} is not semver-like"
