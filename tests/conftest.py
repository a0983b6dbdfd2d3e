"""Shared fixtures: process-wide state is reset around every test."""

import pytest

from treestate import default_registry, default_storage, set_scheduler


@pytest.fixture(autouse=True)
def reset_process_state():
    default_storage.clear()
    default_registry.clear()
    yield
    default_storage.clear()
    default_registry.clear()
    set_scheduler(None)
