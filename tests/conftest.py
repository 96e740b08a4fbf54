"""Shared test fixtures for srcview.

Provides an offscreen QApplication for the Qt-facing tests, a fixed
clock and a few sample buffers.
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from datetime import datetime, timedelta

import pytest

from srcview.core.models import AttributionRecord


NOW = datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole test session."""
    from PyQt6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


def days_ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


@pytest.fixture
def python_source() -> str:
    return (
        "def greet(name):\n"
        "    # TODO: localize the greeting\n"
        "    colors = {'fg': '#FF0000', 'bg': \"#00ff0080\"}\n"
        "    return f\"hello {name}\"\n"
        "\n"
        "print(greet('user'), [1, (2, 3)])\n"
    )


@pytest.fixture
def attribution_records():
    return [
        AttributionRecord(0, 1, "alice", days_ago(600), "a1b2c3d4", "Initial commit"),
        AttributionRecord(1, 3, "bob", days_ago(40), "e5f6a7b8", "Add colors"),
        AttributionRecord(3, 6, "alice", days_ago(2), "c9d0e1f2", "Print greeting"),
    ]
