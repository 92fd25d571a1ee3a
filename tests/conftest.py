"""Shared pytest fixtures for ghpublish tests.

Fixture Organization:
    - Environment isolation: no GHPUBLISH_* variables or .env leak into tests
    - Logging: the ghpublish logger propagates so caplog sees records
    - Sample data: a small generated site directory
    - Config factory: PublishConfig with a resolvable repository
"""

import logging
import os
from pathlib import Path

import pytest

from ghpublish.config import PublishConfig, reset_config
from ghpublish.logging_config import ROOT_LOGGER


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Strip GHPUBLISH_* variables and run from an empty directory (no .env)."""
    for key in list(os.environ):
        if key.upper().startswith("GHPUBLISH_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def reset_ghpublish_logger():
    """Undo configure_logging() so records reach caplog."""
    logger = logging.getLogger(ROOT_LOGGER)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def site_dir(tmp_path) -> Path:
    """Generated site with a single index.html ("hello")."""
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("hello")
    return site


@pytest.fixture
def make_config(tmp_path):
    """Build a PublishConfig for octo/site with explicit overrides."""

    def _make(**overrides) -> PublishConfig:
        values = {
            "repository_owner": "octo",
            "repository_name": "site",
            "oauth2_token": "ghp_test_token",
            "settings_file": str(tmp_path / "missing-settings.yaml"),
            "message": "Publish site",
        }
        values.update(overrides)
        return PublishConfig(**values)

    return _make
