"""Pytest configuration and shared fixtures."""

import pytest

from fakes import FakeClock, RecordingEventPublisher


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def events():
    return RecordingEventPublisher()
