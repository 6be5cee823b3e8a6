from __future__ import annotations

import pytest

from custody.common.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    """
    Test hygiene: `get_settings()` is process-cached; never leak one test's env into another.
    """
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
