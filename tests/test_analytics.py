"""Tests for the analytics service client (no network: a fake session answers)."""

import pytest
import requests
from conftest import raw_event

from lp_rewards.analytics import AnalyticsClient
from lp_rewards.config import load_settings
from lp_rewards.errors import UnknownPoolError, UnknownTokenError
from lp_rewards.events import EventType


class FakeResponse:
    def __init__(self, url, payload, status=200):
        self.url = url
        self.status_code = status
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} for {self.url}")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if url not in self.routes:
            return FakeResponse(url, {"error": "not found"}, status=404)
        return FakeResponse(url, self.routes[url])


BASE = "https://analytics.test"


@pytest.fixture
def session():
    return FakeSession(
        {
            f"{BASE}/tokens": [{"id": 5, "symbol": "ABC", "total": "1000"}],
            f"{BASE}/pools": [
                {"id": 77, "alphaId": 0, "betaId": 5},
                {"id": 78, "alphaId": 0, "betaId": 6},
            ],
            f"{BASE}/pools/77": [
                raw_event(20, EventType.ADD_LIQUIDITY, "B", lp_out=1, pool=77),
                raw_event(10, EventType.ADD_LIQUIDITY, "A", lp_out=1, pool=77),
            ],
        }
    )


@pytest.fixture
def client(session):
    return AnalyticsClient(BASE + "/", timeout=5, session=session)


def test_tokens_include_native_token(client):
    """Test the native token is listed first."""
    tokens = client.tokens()
    assert [t["id"] for t in tokens] == [0, 5]
    assert tokens[0]["symbol"] == "VOI"
    assert tokens[1]["total"] == 1000


def test_metadata_is_fetched_once(client, session):
    """Test pool and token metadata are cached."""
    client.pools()
    client.pool(77)
    client.pool(78)
    assert [c[0] for c in session.calls] == [f"{BASE}/pools"]


def test_pool_symbols(client):
    """Test pool symbol lookup."""
    assert client.pool_symbols(77) == ("VOI", "ABC")


def test_unknown_pool_and_token(client):
    """Test unknown pool and token lookups."""
    with pytest.raises(UnknownPoolError):
        client.pool(1)
    with pytest.raises(UnknownTokenError):
        client.token(6)
    with pytest.raises(UnknownTokenError) as ei:
        client.pool_symbols(78)
    assert ei.value.pool == 78


def test_pool_events_are_sorted_log(client, session):
    """Test pool events come back as a sorted log."""
    log = client.pool_events(77)
    assert [e.sender for e in log] == ["A", "B"]
    url, params, timeout = session.calls[-1]
    assert url == f"{BASE}/pools/77"
    assert params == [("type", 0), ("type", 1), ("type", 2), ("type", 3)]
    assert timeout == 5


def test_http_errors_propagate(client):
    """Test HTTP errors are raised."""
    with pytest.raises(requests.HTTPError):
        client.pool_events(404)


def test_client_from_settings():
    """Test client construction from settings."""
    settings = load_settings(environ={"LP_REWARDS_ANALYTICS_URL": "https://x.test/", "LP_REWARDS_HTTP_TIMEOUT": "2.5"})
    c = AnalyticsClient.from_settings(settings)
    assert c.base_url == "https://x.test"
    assert c.timeout == 2.5
