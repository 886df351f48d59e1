from __future__ import annotations

import pytest

from plansync.correlation import set_client_id, set_correlation_id
from plansync.instrumentation import HookRegistry, set_hook_registry


@pytest.fixture(autouse=True)
def _reset_context():
    """Isolate context-bound state (hooks, request ids) between tests."""
    set_hook_registry(HookRegistry())
    set_correlation_id(None)
    set_client_id(None)
    yield
    set_hook_registry(HookRegistry())
    set_correlation_id(None)
    set_client_id(None)
