"""Shared test fixtures."""

import itertools
import json
from pathlib import Path

import pytest

from lp_rewards.events import EventLog, EventType

POOL_ID = 411756
POOL_ACCOUNT = "POOLACCOUNT"

_ids = itertools.count(1)


def raw_event(
    round,
    type,
    sender="A",
    *,
    lp_in=0,
    lp_out=0,
    tvl=(0, 0),
    receiver=None,
    pool=POOL_ID,
):
    """A raw analytics record, the way the service encodes it (amounts as strings)."""
    rec = {
        "id": f"tx{next(_ids)}",
        "pool": pool,
        "sender": sender,
        "round": round,
        "timestamp": 1_700_000_000 + round,
        "type": int(type),
        "in": ["0", "0", str(lp_in)],
        "out": ["0", "0", str(lp_out)],
        "tvl": [str(tvl[0]), str(tvl[1])],
    }
    if receiver is not None:
        rec["receiver"] = receiver
    return rec


@pytest.fixture
def pool_account() -> str:
    return POOL_ACCOUNT


@pytest.fixture
def scenario_records() -> list[dict]:
    """A joins at round 10, B at round 20, 100 LP tokens each."""
    return [
        raw_event(10, EventType.ADD_LIQUIDITY, "A", lp_out=100, tvl=(50, 50)),
        raw_event(20, EventType.ADD_LIQUIDITY, "B", lp_out=100, tvl=(100, 100)),
    ]


@pytest.fixture
def scenario_log(scenario_records) -> EventLog:
    return EventLog.from_records(scenario_records)


@pytest.fixture
def events_json(tmp_path: Path, scenario_records) -> Path:
    p = tmp_path / "events.json"
    p.write_text(json.dumps(scenario_records))
    return p
