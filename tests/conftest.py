"""Pytest configuration and fixtures for pledge tests."""

import pytest

from pledge import config
from pledge.scheduler import ManualScheduler


@pytest.fixture(autouse=True)
def _reset_config():
    """Each test starts from default configuration."""
    config.reset_all()
    yield
    config.reset_all()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    """A virtual-clock scheduler installed as the default scheduler."""
    scheduler = ManualScheduler()
    config.set_default_scheduler(scheduler)
    return scheduler
