from __future__ import annotations

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # Session state and sweep worker are asyncio-bound.
    return "asyncio"
