"""
Tests for the CLI interface.
"""
import os
import tempfile

import pytest
import yaml
from typer.testing import CliRunner

from analytics_console.cli.main import app, EXIT_CODE_OK, EXIT_CODE_ERROR

runner = CliRunner()


@pytest.fixture
def db_path():
    """Temporary event log path."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield os.path.join(temp_dir, "events.db")


def _invoke(db_path, *args):
    return runner.invoke(app, ["--db", db_path, *args])


class TestCLI:
    """Test CLI commands."""

    def test_no_command_prints_hint(self):
        result = runner.invoke(app, [])
        assert result.exit_code == EXIT_CODE_OK
        assert "Use --help" in result.output

    def test_init(self, db_path):
        result = _invoke(db_path, "init")
        assert result.exit_code == EXIT_CODE_OK
        assert "Event log initialized" in result.output
        assert os.path.exists(db_path)

    def test_log_then_summary(self, db_path):
        for tokens, cost, latency in (("10", "0.01", "100"), ("20", "0.02", "200"), ("30", "0.03", "300")):
            result = _invoke(db_path, "log", "--tokens", tokens, "--cost", cost, "--latency-ms", latency)
            assert result.exit_code == EXIT_CODE_OK
            assert "Logged event" in result.output

        result = _invoke(db_path, "summary")
        assert result.exit_code == EXIT_CODE_OK
        assert "Events: 3" in result.output
        assert "Tokens: 60" in result.output
        assert "avg 200.0 ms" in result.output
        assert "Per request: 20.0 tokens" in result.output

    def test_log_rejects_negative_tokens(self, db_path):
        result = _invoke(db_path, "log", "--tokens=-1", "--cost", "0.01", "--latency-ms", "5")
        assert result.exit_code == EXIT_CODE_ERROR
        assert "Validation error" in result.output

        result = _invoke(db_path, "summary")
        assert "No events recorded." in result.output

    def test_log_rejects_bad_timestamp(self, db_path):
        result = _invoke(db_path, "log", "--tokens", "1", "--timestamp", "yesterday")
        assert result.exit_code == EXIT_CODE_ERROR
        assert "invalid timestamp" in result.output

    def test_log_rejects_bad_metadata(self, db_path):
        result = _invoke(db_path, "log", "--tokens", "1", "--meta", "no-equals-sign")
        assert result.exit_code != EXIT_CODE_OK

    def test_recent_and_daily(self, db_path):
        _invoke(db_path, "log", "--tokens", "5", "--meta", "model=gpt-4")
        result = _invoke(db_path, "recent", "--limit", "5")
        assert result.exit_code == EXIT_CODE_OK
        assert "Recent events (1)" in result.output

        result = _invoke(db_path, "daily", "--days", "1")
        assert result.exit_code == EXIT_CODE_OK
        assert "Daily usage" in result.output

    def test_range(self, db_path):
        for tokens, timestamp in (("111", "2024-06-14T09:00:00+00:00"),
                                  ("222", "2024-06-14T18:00:00+00:00"),
                                  ("333", "2024-06-15T09:00:00+00:00")):
            _invoke(db_path, "log", "--tokens", tokens, "--timestamp", timestamp)

        result = _invoke(db_path, "range", "2024-06-14T00:00:00+00:00", "2024-06-14T23:59:59+00:00")
        assert result.exit_code == EXIT_CODE_OK
        assert "111" in result.output
        assert "222" in result.output
        assert "333" not in result.output

    def test_range_rejects_bad_bounds(self, db_path):
        result = _invoke(db_path, "range", "yesterday", "today")
        assert result.exit_code == EXIT_CODE_ERROR
        assert "Validation error" in result.output

    def test_empty_reads(self, db_path):
        assert "No events recorded." in _invoke(db_path, "recent").output
        assert "No events in the selected window." in _invoke(db_path, "daily").output
        assert "No events recorded." in _invoke(db_path, "breakdown").output

    def test_breakdown(self, db_path):
        _invoke(db_path, "log", "--tokens", "5", "--meta", "provider=openai")
        result = _invoke(db_path, "breakdown", "--key", "provider")
        assert result.exit_code == EXIT_CODE_OK
        assert "openai" in result.output

    def test_clear(self, db_path):
        _invoke(db_path, "log", "--tokens", "5")
        result = _invoke(db_path, "clear")
        assert result.exit_code == EXIT_CODE_OK
        assert "No events recorded." in _invoke(db_path, "summary").output

    def test_clear_refused_in_production(self, db_path):
        config_path = os.path.join(os.path.dirname(db_path), "config.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump({"environment": "production", "database": db_path}, f)

        runner.invoke(app, ["--config", config_path, "log", "--tokens", "5"])
        result = runner.invoke(app, ["--config", config_path, "clear"])
        assert result.exit_code == EXIT_CODE_ERROR
        assert "Refused" in result.output

        result = runner.invoke(app, ["--config", config_path, "summary"])
        assert "Events: 1" in result.output

    def test_bad_config(self, db_path):
        result = runner.invoke(app, ["--config", "/nonexistent/config.yaml", "summary"])
        assert result.exit_code == EXIT_CODE_ERROR
        assert "Configuration error" in result.output
