from __future__ import annotations

"""
Client for the pool analytics service (event source + pool/token metadata).

One GET per call, with a timeout; HTTP errors propagate (`requests.HTTPError`).
Retrying is left to whoever drives the run.
"""

import logging

import requests

from lp_rewards.config import NATIVE_TOKEN, Settings
from lp_rewards.errors import UnknownPoolError, UnknownTokenError
from lp_rewards.events import EventLog, EventType

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"User-Agent": "lp-rewards/0.1", "Accept": "application/json"}


class AnalyticsClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self._tokens: list[dict] | None = None
        self._pools: list[dict] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalyticsClient:
        return cls(settings.analytics_url, timeout=settings.http_timeout)

    def _get(self, path: str, params: list[tuple[str, object]] | None = None):
        url = f"{self.base_url}{path}"
        resp = self.session.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        logger.debug("GET %s -> %d", resp.url, resp.status_code)
        return resp.json()

    def tokens(self) -> list[dict]:
        if self._tokens is None:
            tokens = list(self._get("/tokens"))
            tokens.insert(0, dict(NATIVE_TOKEN))
            for t in tokens:
                t["total"] = int(t.get("total", 0))
            self._tokens = tokens
        return self._tokens

    def pools(self) -> list[dict]:
        if self._pools is None:
            self._pools = list(self._get("/pools"))
        return self._pools

    def pool(self, pool_id: int) -> dict:
        for p in self.pools():
            if int(p["id"]) == int(pool_id):
                return p
        raise UnknownPoolError("pool not listed by the analytics service", pool=pool_id)

    def token(self, token_id: int) -> dict:
        for t in self.tokens():
            if int(t["id"]) == int(token_id):
                return t
        raise UnknownTokenError("token not listed by the analytics service", token=token_id)

    def pool_symbols(self, pool_id: int) -> tuple[str, str]:
        """(alpha, beta) symbols, for labels only."""
        p = self.pool(pool_id)
        try:
            alpha = self.token(p["alphaId"])
            beta = self.token(p["betaId"])
        except UnknownTokenError as e:
            raise UnknownTokenError(str(e), pool=pool_id) from e
        return str(alpha["symbol"]), str(beta["symbol"])

    def pool_events(self, pool_id: int) -> EventLog:
        params = [("type", int(t)) for t in EventType]
        records = self._get(f"/pools/{int(pool_id)}", params=params)
        log = EventLog.from_records(records, pool=int(pool_id))
        logger.info("pool %d: fetched %d events", pool_id, len(log))
        return log


__all__ = ["AnalyticsClient"]
