"""Tests for the command line interface."""

from typer.testing import CliRunner

from nessus_rest import __version__
from nessus_rest.cli import app

runner = CliRunner()


class TestCli:
    """Tests for commands that need no scanner."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config(self):
        """Test that config shows connection settings."""
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0
        assert "Retries" in result.output
        assert "Poll Sleep" in result.output
