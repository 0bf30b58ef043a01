"""Tests for the single capture window lock (no session bus required)."""

import pytest

from miletrack.utils import single_instance
from miletrack.utils.single_instance import SingleInstanceManager


@pytest.fixture
def no_dbus(monkeypatch):
    monkeypatch.setattr(single_instance, "DBUS_AVAILABLE", False)


def test_launch_allowed_without_dbus(no_dbus):
    manager = SingleInstanceManager()
    assert manager.acquire() is True
    assert manager.activate_running() is False


def test_activation_runs_window_handler():
    calls = []
    manager = SingleInstanceManager()
    manager.set_activate_handler(lambda: calls.append("raised"))

    manager.handle_activate()
    assert calls == ["raised"]


def test_activation_before_window_exists_is_ignored():
    SingleInstanceManager().handle_activate()


def test_release_drops_handler():
    calls = []
    manager = SingleInstanceManager()
    manager.set_activate_handler(lambda: calls.append("raised"))

    manager.release()
    manager.handle_activate()
    assert calls == []
    assert manager.name is None
