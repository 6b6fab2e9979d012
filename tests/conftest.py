"""Shared pytest fixtures for reference-manager-sync tests."""

import pytest

from factories import build_item


@pytest.fixture
def make_item():
    """Factory fixture for CSL-JSON items (see ``factories.build_item``)."""
    return build_item


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with no config files, no REFMGR_* env vars, and CWD in tmp_path."""
    for var in (
        "REFMGR_CONFIG",
        "REFMGR_PREFER",
        "REFMGR_STATE_DIR",
        "REFMGR_LIBRARY",
        "REFMGR_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return tmp_path
