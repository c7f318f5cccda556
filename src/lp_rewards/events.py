from __future__ import annotations

"""
Pool event log.

The analytics service emits one record per pool transaction:

  {id, pool, sender, receiver?, round, timestamp, type, in[3], out[3], tvl[2]}

Amounts are exact integers in base units, encoded either as JSON integers or as decimal
strings (they routinely exceed 2**53, so we never go through float). `in`/`out` are
indexed (alpha, beta, LP token); `tvl` holds the two reserve magnitudes after the event.

The log is sorted by round once, at construction, and is read-only afterwards. Replay
code only ever iterates it front to back.
"""

import json
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

import pandas as pd

from lp_rewards.errors import InconsistentLedgerError, MalformedEventError

ALPHA_INDEX = 0
BETA_INDEX = 1
LP_TOKEN_INDEX = 2


class EventType(IntEnum):
    # numeric codes used by the analytics service
    SWAP = 0
    ADD_LIQUIDITY = 1
    REMOVE_LIQUIDITY = 2
    TRANSFER = 3


# Types whose `tvl` components describe the pool reserves.
RESERVE_EVENT_TYPES = frozenset({EventType.ADD_LIQUIDITY, EventType.REMOVE_LIQUIDITY, EventType.SWAP})


@dataclass(frozen=True)
class PoolEvent:
    id: str
    pool: int
    sender: str
    round: int
    timestamp: int
    type: EventType
    amount_in: tuple[int, int, int]
    amount_out: tuple[int, int, int]
    tvl: tuple[int, int]
    receiver: str | None = None


_DECIMAL_INT = re.compile(r"-?[0-9]+")


def _to_int(value: object, *, event_id: object, field: str) -> int:
    # no floats: exactness is already lost above 2**53
    if isinstance(value, bool):
        raise MalformedEventError("boolean is not an integer amount", event_id=event_id, field=field, value=value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        if not _DECIMAL_INT.fullmatch(value):
            raise MalformedEventError("not a decimal integer", event_id=event_id, field=field, value=repr(value))
        return int(value, 10)
    raise MalformedEventError("unsupported numeric encoding", event_id=event_id, field=field, value=repr(value))


def _to_amounts(values: object, n: int, *, event_id: object, field: str) -> tuple[int, ...]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence) or len(values) != n:
        raise MalformedEventError(f"expected {n} amounts", event_id=event_id, field=field, value=repr(values))
    out = []
    for i, v in enumerate(values):
        amount = _to_int(v, event_id=event_id, field=f"{field}[{i}]")
        if amount < 0:
            raise MalformedEventError("negative amount", event_id=event_id, field=f"{field}[{i}]", value=amount)
        out.append(amount)
    return tuple(out)


def parse_event(raw: Mapping[str, object], *, pool: int | None = None) -> PoolEvent:
    """
    Convert one raw analytics record into a `PoolEvent`.

    `pool` fills in the pool id for sources that omit it from each record.
    """
    event_id = raw.get("id")
    missing = [k for k in ("sender", "round", "type", "in", "out", "tvl") if k not in raw]
    if missing:
        raise MalformedEventError("missing fields " + ",".join(missing), event_id=event_id)

    code = _to_int(raw["type"], event_id=event_id, field="type")
    try:
        etype = EventType(code)
    except ValueError:
        raise MalformedEventError("unknown event type", event_id=event_id, field="type", value=code) from None

    receiver = raw.get("receiver")
    if etype is EventType.TRANSFER and not receiver:
        raise MalformedEventError("transfer without receiver", event_id=event_id, field="receiver")

    pool_raw = raw.get("pool", pool)
    if pool_raw is None:
        raise MalformedEventError("missing pool id", event_id=event_id, field="pool")

    return PoolEvent(
        id=str(event_id if event_id is not None else ""),
        pool=_to_int(pool_raw, event_id=event_id, field="pool"),
        sender=str(raw["sender"]),
        receiver=str(receiver) if receiver else None,
        round=_to_int(raw["round"], event_id=event_id, field="round"),
        timestamp=_to_int(raw.get("timestamp", 0), event_id=event_id, field="timestamp"),
        type=etype,
        amount_in=_to_amounts(raw["in"], 3, event_id=event_id, field="in"),
        amount_out=_to_amounts(raw["out"], 3, event_id=event_id, field="out"),
        tvl=_to_amounts(raw["tvl"], 2, event_id=event_id, field="tvl"),
    )


class EventView:
    """
    Lazy, restartable view over an `EventLog` restricted to a set of event types.

    Every `iter()` starts again from the first event of the log.
    """

    def __init__(self, log: EventLog, types: Iterable[EventType] | None = None) -> None:
        self._log = log
        self._types = frozenset(types) if types is not None else None

    def __iter__(self) -> Iterator[PoolEvent]:
        for e in self._log:
            if self._types is None or e.type in self._types:
                yield e


class EventLog(Sequence[PoolEvent]):
    """
    Immutable, round-ascending sequence of pool events.

    Use `from_records` for raw service output (parses + sorts). The plain constructor
    only accepts events that are already round-ordered, so every replay over a log sees
    rounds in non-decreasing order.
    """

    def __init__(self, events: Iterable[PoolEvent] = ()) -> None:
        evs = tuple(events)
        for prev, cur in zip(evs, evs[1:]):
            if cur.round < prev.round:
                raise InconsistentLedgerError(
                    f"events must be sorted by round; round {cur.round} follows round {prev.round}"
                    " (use EventLog.from_records to sort raw input)",
                    pool=cur.pool,
                    round=cur.round,
                    event_id=cur.id,
                )
        self._events = evs

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, object]], *, pool: int | None = None) -> EventLog:
        parsed = [parse_event(r, pool=pool) for r in records]
        # sorted() is stable: events within a round keep their log order
        return cls(sorted(parsed, key=lambda e: e.round))

    @classmethod
    def from_json(cls, path: Path, *, pool: int | None = None) -> EventLog:
        records = json.loads(Path(path).read_text())
        if not isinstance(records, list):
            raise MalformedEventError(f"{path} must contain a JSON array of events")
        return cls.from_records(records, pool=pool)

    def __getitem__(self, idx):
        return self._events[idx]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[PoolEvent]:
        return iter(self._events)

    def select(self, *types: EventType) -> EventView:
        return EventView(self, types or None)

    def to_frame(self) -> pd.DataFrame:
        """One row per event; amounts stay Python ints (object dtype)."""
        rows = [
            {
                "id": e.id,
                "pool": e.pool,
                "round": e.round,
                "timestamp": e.timestamp,
                "type": e.type.name,
                "sender": e.sender,
                "receiver": e.receiver,
                "in_alpha": e.amount_in[ALPHA_INDEX],
                "in_beta": e.amount_in[BETA_INDEX],
                "in_lp": e.amount_in[LP_TOKEN_INDEX],
                "out_alpha": e.amount_out[ALPHA_INDEX],
                "out_beta": e.amount_out[BETA_INDEX],
                "out_lp": e.amount_out[LP_TOKEN_INDEX],
                "tvl_alpha": e.tvl[0],
                "tvl_beta": e.tvl[1],
            }
            for e in self._events
        ]
        df = pd.DataFrame(rows, dtype=object)
        for col in ("pool", "round", "timestamp"):
            if col in df.columns:
                df[col] = df[col].astype("int64")
        return df


__all__ = [
    "ALPHA_INDEX",
    "BETA_INDEX",
    "LP_TOKEN_INDEX",
    "EventType",
    "RESERVE_EVENT_TYPES",
    "PoolEvent",
    "parse_event",
    "EventView",
    "EventLog",
]
