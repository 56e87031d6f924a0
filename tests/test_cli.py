"""Tests for the command line interface."""

import logging

import pytest
from typer.testing import CliRunner

from tenderwatch import __version__
from tenderwatch.cli.main import app
from tenderwatch.core.config.models import Source
from tenderwatch.persistence.gateway import SqlGateway

from conftest import make_tender

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's closed streams."""
    yield
    logger = logging.getLogger("tenderwatch")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def workspace(tmp_path):
    """Config file pointing every path into a temp directory."""
    db_url = f"sqlite:///{tmp_path / 'data' / 'tw.db'}"
    config_path = tmp_path / "app.yaml"
    config_path.write_text(
        f"data_dir: {tmp_path / 'data'}\n"
        f"database:\n  url: {db_url}\n"
        f"logging:\n  file: {tmp_path / 'logs' / 'tw.log'}\n  rich_console: false\n",
        encoding="utf-8",
    )
    return config_path, db_url


def _invoke(config_path, *args):
    return runner.invoke(app, ["--config", str(config_path), *args])


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


class TestCheckConfig:
    """Tests for check-config."""

    def test_valid(self, workspace):
        config_path, _ = workspace
        result = _invoke(config_path, "check-config")

        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_invalid(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("scheduler:\n  interval_minutes: 0\n", encoding="utf-8")

        result = runner.invoke(app, ["check-config", str(path)])

        assert result.exit_code == 1


class TestSourcesCommands:
    """Tests for sources list/enable/disable."""

    def test_list(self, workspace):
        config_path, _ = workspace
        result = _invoke(config_path, "sources", "list")

        assert result.exit_code == 0
        for source in Source:
            assert source.value in result.output

    def test_disable_persists(self, workspace):
        config_path, db_url = workspace
        result = _invoke(config_path, "sources", "disable", "doffin")

        assert result.exit_code == 0
        assert "Doffin disabled" in result.output
        assert SqlGateway.from_url(db_url).read_enabled_sources()[Source.DOFFIN] is False

    def test_unknown_source(self, workspace):
        config_path, _ = workspace
        result = _invoke(config_path, "sources", "enable", "kgv")

        assert result.exit_code == 2


class TestRemindersCommands:
    """Tests for reminder management."""

    def test_urgency(self):
        result = runner.invoke(app, ["reminders", "urgency", "10.03.2026", "--now", "05.03.2026"])

        assert result.exit_code == 0
        assert "warning" in result.output

    def test_urgency_bad_date(self):
        result = runner.invoke(app, ["reminders", "urgency", "soon"])
        assert result.exit_code == 1

    def test_set_list_remove(self, workspace):
        config_path, db_url = workspace
        SqlGateway.from_url(db_url).upsert([make_tender("A-1", "Maling av skole")])

        result = _invoke(config_path, "reminders", "set", "A-1", "7", "3")
        assert result.exit_code == 0
        assert "3, 7 days" in result.output

        result = _invoke(config_path, "reminders", "list")
        assert result.exit_code == 0
        assert "A-1" in result.output

        assert _invoke(config_path, "reminders", "remove", "A-1").exit_code == 0
        assert _invoke(config_path, "reminders", "remove", "A-1").exit_code == 1


class TestTendersCommands:
    """Tests for annotations."""

    def test_note_and_show(self, workspace):
        config_path, db_url = workspace
        SqlGateway.from_url(db_url).upsert([make_tender("A-1", "Maling av skole")])

        assert _invoke(config_path, "tenders", "note", "anbud", "A-1", "Ring innkjøper").exit_code == 0
        assert _invoke(config_path, "tenders", "tag", "anbud", "A-1", "maling").exit_code == 0

        result = _invoke(config_path, "tenders", "show", "anbud", "A-1")
        assert result.exit_code == 0
        assert "Ring innkjøper" in result.output

    def test_unknown_tender(self, workspace):
        config_path, _ = workspace
        result = _invoke(config_path, "tenders", "favorite", "anbud", "missing")

        assert result.exit_code == 1
