"""Integration tests: full analysis runs and CLI invocations."""

import pytest

from click.testing import CliRunner


def pytest_collection_modifyitems(items):
    for item in items:
        if item.path.parent.name == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def cli_runner():
    """Click runner for invoking the ppgspec command group."""
    return CliRunner()
