"""
Tests for the layover command line.
"""

import pytest
from aioresponses import aioresponses
from typer.testing import CliRunner

from layover import __version__
from layover.cli.fetch import _parse_headers, _settings
from layover.cli.main import app

runner = CliRunner()

URL = "https://api.example.com/items"


class TestCLI:
    """Tests for the CLI entry point."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"layover version {__version__}" in result.output

    def test_help_without_command(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "fetch" in result.output


class TestFetch:
    """Tests for 'layover fetch'."""

    def test_fetch(self):
        """Test the status, headers and body are printed."""
        with aioresponses() as m:
            m.get(URL, status=200, body="hello from the server", headers={"X-Served-By": "edge-1"})
            result = runner.invoke(app, ["fetch", URL])

        assert result.exit_code == 0, result.output
        assert "200" in result.output
        assert "X-Served-By" in result.output
        assert "hello from the server" in result.output

    def test_fetch_with_config(self, tmp_path):
        """Test the chain can come from a config file."""
        path = tmp_path / "layover.yaml"
        path.write_text("transport:\n  retry: false\n  headers:\n    X-Api-Key: abc\n")
        with aioresponses() as m:
            m.post(URL, status=201, body="created")
            result = runner.invoke(app, ["fetch", URL, "-X", "POST", "-d", '{"a": 1}', "--config", str(path)])

        assert result.exit_code == 0, result.output
        assert "201" in result.output
        assert "created" in result.output

    def test_config_logging_section(self, tmp_path):
        """Test the logging section of the config file sends records to a file."""
        log_file = tmp_path / "layover.log"
        path = tmp_path / "layover.yaml"
        path.write_text(
            "logging:\n"
            "  level: INFO\n"
            f"  file: {log_file}\n"
            "transport:\n"
            "  log: {level: INFO}\n"
        )
        with aioresponses() as m:
            m.get(URL, status=200, body="ok")
            result = runner.invoke(app, ["fetch", URL, "--config", str(path)])

        assert result.exit_code == 0, result.output
        assert "http response" in log_file.read_text()

    def test_missing_config(self, tmp_path):
        """Test a missing config file exits with status 1."""
        result = runner.invoke(app, ["fetch", URL, "--config", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_compression(self):
        """Test an unknown --compress value exits with status 1."""
        result = runner.invoke(app, ["fetch", URL, "-d", "x", "--compress", "lzma"])
        assert result.exit_code == 1
        assert "invalid encoding" in result.output

    def test_parse_headers(self):
        assert _parse_headers(["Accept: application/json", "X-Empty:"]) == [
            ("Accept", "application/json"),
            ("X-Empty", ""),
        ]

    def test_parse_headers_rejects_malformed(self):
        import typer

        with pytest.raises(typer.BadParameter):
            _parse_headers(["no colon here"])

    def test_settings(self):
        """Test command line options map onto a transport section."""
        settings = _settings(qps=2.0, retries=0, compress="br", verbose=True)["transport"]

        assert settings["retry"] is False
        assert settings["throttle"] == {"qps": 2.0}
        assert settings["accept_compressed"] is True
        assert settings["post_compressed"] == {"encoding": "br"}
        assert settings["log"] == {"level": "INFO"}
