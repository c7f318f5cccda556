from __future__ import annotations

"""
Endpoints, data locations and reward constants.

Environment variable overrides (all optional):
  - LP_REWARDS_ANALYTICS_URL
  - LP_REWARDS_ALGOD_URL / LP_REWARDS_ALGOD_TOKEN
  - LP_REWARDS_INDEXER_URL / LP_REWARDS_INDEXER_TOKEN
  - LP_REWARDS_DATA_DIR
  - LP_REWARDS_DISTRIBUTOR   (address that will sign and fund the payouts)
  - LP_REWARDS_HTTP_TIMEOUT  (seconds)

Nothing here talks to the network or creates files.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path

DEFAULT_ANALYTICS_URL = "https://voimain-analytics.nomadex.app"
DEFAULT_ALGOD_URL = "https://voimain-api.nomadex.app"
DEFAULT_INDEXER_URL = "https://mainnet-idx.voi.nodely.dev"
EXPLORER_TXN_URL = "https://block.voi.network/explorer/transaction/{txn_id}"

# First round ever rewarded; a new pool's cursor starts here.
DEFAULT_FROM_ROUND = 8_150_000

# Budget the accumulation is run with. Accruals are shares of this scale; the real
# reward and TVL share are derived from them afterwards.
REWARD_SHARE_SCALE = 100_000_000_000

BLOCK_TIME_SECONDS = Fraction("2.81")
ROUNDS_PER_YEAR = int(Fraction(365 * 24 * 60 * 60) / BLOCK_TIME_SECONDS)

# The analytics service does not list the native token.
NATIVE_TOKEN = {
    "id": 0,
    "type": 0,
    "decimals": 6,
    "name": "VOI",
    "symbol": "VOI",
    "total": 10_000_000_000_000000,
}
DISPLAY_DECIMALS = 6

NOTE_BRAND = "Nomadex"


@dataclass(frozen=True)
class KnownPool:
    pool_id: int
    apr: float


# Pools registered on every run (APR targets are fractions, 0.2875 == 28.75%).
KNOWN_POOLS = (
    KnownPool(411756, 0.2875),
    KnownPool(40176866, 0.14375),
    KnownPool(40176894, 0.14375),
    KnownPool(40215993, 0.14375),
    KnownPool(411789, 0.14375),
)


@dataclass(frozen=True)
class Settings:
    analytics_url: str
    algod_url: str
    algod_token: str
    indexer_url: str
    indexer_token: str
    data_dir: Path
    distributor: str | None
    http_timeout: float

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / "data.json"

    @property
    def txns_path(self) -> Path:
        return self.data_dir / "txns.txt"


def load_settings(*, root: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """
    Resolve settings from the environment. `root` is the default parent of `data/`.
    """
    env = os.environ if environ is None else environ
    root = Path.cwd() if root is None else Path(root)

    timeout_raw = env.get("LP_REWARDS_HTTP_TIMEOUT", "30")
    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(f"LP_REWARDS_HTTP_TIMEOUT must be a number of seconds, got {timeout_raw!r}") from None

    return Settings(
        analytics_url=env.get("LP_REWARDS_ANALYTICS_URL", DEFAULT_ANALYTICS_URL).rstrip("/"),
        algod_url=env.get("LP_REWARDS_ALGOD_URL", DEFAULT_ALGOD_URL),
        algod_token=env.get("LP_REWARDS_ALGOD_TOKEN", ""),
        indexer_url=env.get("LP_REWARDS_INDEXER_URL", DEFAULT_INDEXER_URL),
        indexer_token=env.get("LP_REWARDS_INDEXER_TOKEN", ""),
        data_dir=Path(env.get("LP_REWARDS_DATA_DIR", root / "data")).resolve(),
        distributor=env.get("LP_REWARDS_DISTRIBUTOR") or None,
        http_timeout=timeout,
    )
