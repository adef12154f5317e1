"""Shared pytest fixtures for scopebind tests."""

import pytest

from scopebind import ScopeBindSettings, init_context, teardown_context


@pytest.fixture(autouse=True)
def scope_context():
    """Fresh registry, root provider and settings for every test."""
    ctx = init_context(ScopeBindSettings(diagnostics_enabled=False, root_factory=None))
    yield ctx
    teardown_context()
