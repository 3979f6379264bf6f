"""Shared fixtures for notes analytics tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from analytics import AnalyticsEngine
from config import AnalyticsSettings
from helpers import FIXED_NOW, FakeClock, FakeDocumentSource


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def source():
    """Empty in-memory document source; tests add notes as needed."""
    return FakeDocumentSource()


@pytest.fixture()
def engine_settings():
    return AnalyticsSettings(batch_size=3, modify_debounce_seconds=0.01)


@pytest.fixture()
def engine(source, engine_settings, clock):
    """Engine over the fake source with a fixed "now" and a manual clock."""
    eng = AnalyticsEngine(source, engine_settings, now=lambda: FIXED_NOW, clock=clock)
    yield eng
    eng.dispose()


@pytest.fixture()
def client(engine):
    """TestClient for app.py backed by the fake-source engine.

    Patches the module-level engine so no notes folder is needed.
    """
    import app as app_module

    with patch.object(app_module, "_engine", engine):
        with TestClient(app_module.app) as tc:
            yield tc
