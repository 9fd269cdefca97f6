import os
import sys
import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from store import client as store_client
from store.client import _fallback


@pytest.fixture(autouse=True)
def clear_fallback(monkeypatch):
    """Wipe the in-memory redis fallback before and after each test and make
    every redis helper operate on it, so no test touches the network.
    """
    _fallback.clear()

    async def no_redis():
        return None

    monkeypatch.setattr(store_client, "get_redis", no_redis)
    monkeypatch.setattr(store_client, "_redis_client", None)

    yield

    _fallback.clear()
