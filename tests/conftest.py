import json
import socket
from datetime import datetime, timezone
from pathlib import Path

import pytest

from area_search.core.cache import counters
from area_search.geo.geometry import ShapeKind, normalize


FIXTURES = Path(__file__).resolve().parent / "fixtures"
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0] if isinstance(address, tuple) else address
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)


@pytest.fixture(autouse=True)
def reset_rate_limit():
    counters.clear()
    yield
    counters.clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def square_ring():
    # (lat, lng) square from the docs: 0..10 on both axes
    return normalize(ShapeKind.POLYGON, [(0, 0), (0, 10), (10, 10), (10, 0), (0, 0)])


@pytest.fixture
def fixture_records():
    with open(FIXTURES / "listings.json", "r", encoding="utf-8") as f:
        return json.load(f)
