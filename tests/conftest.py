"""Pytest configuration and fixtures for ppgspec tests."""

from pathlib import Path

import numpy as np
import pytest


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that do not require external dependencies"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests combining multiple components"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time (>5 seconds)"
    )


@pytest.fixture
def rng():
    """Seeded random generator for reproducible noise."""
    return np.random.default_rng(12345)


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def config_path(tmp_path, monkeypatch) -> Path:
    """Point the config file at a temporary location."""
    path = tmp_path / "ppgspec" / "config.toml"
    monkeypatch.setattr("ppgspec.config.get_config_path", lambda: path)
    monkeypatch.setattr("ppgspec.cli.get_config_path", lambda: path)
    return path


@pytest.fixture
def log_dir(tmp_path, monkeypatch) -> Path:
    """Point the log directory at a temporary location."""
    path = tmp_path / "logs"
    monkeypatch.setattr("ppgspec.logging_config.DEFAULT_LOG_DIR", path)
    return path


@pytest.fixture
def write_config(config_path):
    """Write raw TOML text to the temporary config file."""

    def _write(text: str) -> Path:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(text)
        return config_path

    return _write
