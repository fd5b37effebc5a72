"""Tests for the jelly command line."""

import pytest
from typer.testing import CliRunner

from jelly.presentation.cli.app import app
from jelly_config import clear_settings_cache
from tests.shared.fixtures.settings import TEST_SECRET_KEY

runner = CliRunner()


@pytest.fixture
def cli_env(monkeypatch, database_url):
    monkeypatch.setenv("SECRET_KEY", TEST_SECRET_KEY)
    monkeypatch.setenv("POSTGRES_PASSWORD", "unused")
    monkeypatch.setenv("DATABASE_URL", database_url)
    monkeypatch.setenv("EMAIL_BACKEND", "console")
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestCli:
    def test_secrets_generate(self):
        result = runner.invoke(app, ["secrets", "generate"])

        assert result.exit_code == 0
        assert "SECRET_KEY" in result.output

    def test_db_init_then_empty_stats(self, cli_env):
        init = runner.invoke(app, ["db", "init"])
        stats = runner.invoke(app, ["queue", "stats"])

        assert init.exit_code == 0, init.output
        assert "Schema ready" in init.output
        assert stats.exit_code == 0, stats.output
        assert "pending" in stats.output

    def test_worker_once_on_empty_queue(self, cli_env):
        runner.invoke(app, ["db", "init"])

        result = runner.invoke(app, ["worker", "run", "--once"])

        assert result.exit_code == 0, result.output
        assert "Claimed 0" in result.output

    def test_purge(self, cli_env):
        runner.invoke(app, ["db", "init"])

        result = runner.invoke(app, ["queue", "purge", "--days", "0"])

        assert result.exit_code == 0, result.output
        assert "Removed" in result.output
        assert "expired token(s)" in result.output
        assert "expired OAuth state(s)" in result.output

    def test_drop_requires_confirmation(self, cli_env):
        result = runner.invoke(app, ["db", "init", "--drop"], input="n\n")

        assert result.exit_code != 0
