"""Unit tests: pure functions on synthetic arrays, no config or CLI."""

import pytest


def pytest_collection_modifyitems(items):
    for item in items:
        if item.path.parent.name == "unit":
            item.add_marker(pytest.mark.unit)
