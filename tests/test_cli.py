import json

import pytest
from structlog.testing import capture_logs

from bookshelf import cli
from bookshelf.core.config import Settings
from bookshelf.core.models import PLACEHOLDER_COVER


@pytest.fixture
def env(monkeypatch, site_root):
    monkeypatch.setenv("BOOKSHELF_ROOT", str(site_root))
    monkeypatch.setenv("BOOKSHELF_RATE_LIMIT_MS", "0")
    monkeypatch.delenv("BOOKSHELF_CATALOG", raising=False)
    return site_root


def test_parser_mode_flag():
    assert cli.build_parser().parse_args([]).download is False
    assert cli.build_parser().parse_args(["--download"]).download is True


def test_settings_from_env(env):
    settings = Settings.from_env()
    assert settings.catalog_path == env.resolve() / "data" / "books.json"
    assert settings.delay == 0


def test_missing_catalog_exits_non_zero(env):
    with capture_logs() as logs:
        assert cli.main([]) == 1
    assert logs[-1]["event"] == "cover_resolution_failed"
    assert logs[-1]["log_level"] == "error"


def test_run_rewrites_catalog(env):
    path = env / "data" / "books.json"
    path.write_text(json.dumps([{"title": "Unknown Book", "genre": "mystery"}]))

    with capture_logs() as logs:
        assert cli.main([]) == 0

    assert json.loads(path.read_text()) == [
        {"title": "Unknown Book", "genre": "mystery", "cover": PLACEHOLDER_COVER, "coverRemote": None}
    ]
    summary = logs[-1]
    assert summary["event"] == "covers_processed"
    assert summary["mode"] == "metadata"
    assert summary["placeholder"] == 1
