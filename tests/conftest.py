# tests/conftest.py

"""Shared pytest fixtures for all catalog_dedup tests."""

from collections.abc import Generator
from pathlib import Path

import pytest

from catalog_dedup.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_output_dirs(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
) -> Generator[Path, None, None]:
    """Send logs, backups and reports to a per-test temp directory."""
    monkeypatch.setattr(Settings, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(Settings, "BACKUPS_DIR", tmp_path / "backups")
    monkeypatch.setattr(Settings, "REPORTS_DIR", tmp_path / "reports")
    monkeypatch.setattr(
        Settings, "CATALOG_DB_PATH", tmp_path / "data" / "catalog.db",
    )
    yield tmp_path
