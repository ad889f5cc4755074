# tests/conftest.py
import os
import time

import pytest


@pytest.fixture
def seoul_tz():
    """Runs the test with the process time zone set to Asia/Seoul (UTC+9)."""
    if not hasattr(time, "tzset"):
        pytest.skip("process time zone cannot be switched on this platform")
    saved = os.environ.get("TZ")
    os.environ["TZ"] = "Asia/Seoul"
    time.tzset()
    yield
    if saved is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = saved
    time.tzset()
