from __future__ import annotations

"""
Persisted reward ledger.

One JSON snapshot holds every pool's distribution history:

  {"fromRound": int,
   "pools": [{"pool": int, "apr": float,
              "distributions": [{"fromRound", "toRound", "tvl", "reward",
                                 "payouts": [{"address", "amount", "tvl", "txnId", "verified"}]}]}]}

Amounts are decimal strings. A pool's cursor is the highest `toRound` it has been
paid for; the next distribution starts right after it. Records are immutable, so
issuing or verifying a payout swaps in a new record.

The snapshot is only written after a run succeeded, and atomically.
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path

from lp_rewards.config import DEFAULT_FROM_ROUND
from lp_rewards.distribution import DistributionRecord, Payout
from lp_rewards.errors import UnknownPoolError, VerificationError

logger = logging.getLogger(__name__)

# (record, payout) -> (txn_id, base64 transaction)
PaymentBuilder = Callable[[DistributionRecord, Payout], tuple[str, str]]


@dataclass
class PoolEntry:
    pool: int
    apr: float
    distributions: list[DistributionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class IssuedPayment:
    pool: int
    from_round: int
    to_round: int
    payout: Payout
    txn: str


def _validate_apr(apr: float) -> float:
    apr = float(apr)
    if apr < 0 or apr > 1:
        raise ValueError(f"APR must be between 0 and 1, got {apr}")
    return apr


class RewardLedger:
    def __init__(self, from_round: int = DEFAULT_FROM_ROUND) -> None:
        self.from_round = int(from_round)
        self._pools: dict[int, PoolEntry] = {}

    # -- (de)serialisation -------------------------------------------------------------

    @classmethod
    def from_json(cls, data: dict) -> RewardLedger:
        ledger = cls(int(data.get("fromRound", DEFAULT_FROM_ROUND)))
        for p in data.get("pools", []):
            pool_id = int(p["pool"])
            ledger.add_pool(pool_id, p["apr"])
            for d in p.get("distributions", []):
                ledger._pools[pool_id].distributions.append(DistributionRecord.from_dict(d, pool=pool_id))
        return ledger

    def to_json(self) -> dict:
        return {
            "fromRound": self.from_round,
            "pools": [
                {
                    "pool": e.pool,
                    "apr": e.apr,
                    "distributions": [d.to_dict() for d in e.distributions],
                }
                for e in self._pools.values()
            ],
        }

    def __str__(self) -> str:
        return json.dumps(self.to_json(), indent=2)

    @classmethod
    def load(cls, path: Path, *, create: bool = False) -> RewardLedger:
        path = Path(path)
        if not path.exists():
            if create:
                logger.info("no ledger at %s; starting a new one", path)
                return cls()
            raise FileNotFoundError(f"Reward ledger not found: {path}")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ValueError(f"Reward ledger {path} is not valid JSON: {e}") from e
        return cls.from_json(data)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(str(self) + "\n")
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        return path

    # -- pools and cursors -------------------------------------------------------------

    def pool_ids(self) -> list[int]:
        return list(self._pools)

    def has_pool(self, pool_id: int) -> bool:
        return int(pool_id) in self._pools

    def get_pool(self, pool_id: int) -> PoolEntry:
        try:
            return self._pools[int(pool_id)]
        except KeyError:
            raise UnknownPoolError("pool not registered in the ledger", pool=pool_id) from None

    def add_pool(self, pool_id: int, apr: float) -> None:
        """Register a pool; already-registered pools keep their APR."""
        if int(pool_id) in self._pools:
            return
        self._pools[int(pool_id)] = PoolEntry(pool=int(pool_id), apr=_validate_apr(apr))

    def last_round(self, pool_id: int) -> int:
        entry = self.get_pool(pool_id)
        return max([self.from_round - 1] + [d.to_round for d in entry.distributions])

    def next_round(self, pool_id: int) -> int:
        return self.last_round(pool_id) + 1

    def add_distribution(self, record: DistributionRecord) -> None:
        expected = self.next_round(record.pool)
        if record.from_round != expected:
            raise ValueError(
                f"distribution for pool {record.pool} starts at round {record.from_round}, "
                f"but the ledger cursor expects {expected}"
            )
        if record.to_round < record.from_round:
            raise ValueError(f"empty round range {record.from_round}-{record.to_round}")
        self.get_pool(record.pool).distributions.append(record)

    def distributions(self, pool_id: int | None = None) -> list[DistributionRecord]:
        entries = self._pools.values() if pool_id is None else [self.get_pool(pool_id)]
        return [d for e in entries for d in e.distributions]

    def is_pool_verified(self, pool_id: int) -> bool:
        if not self.has_pool(pool_id):
            return False
        return all(d.is_verified for d in self.get_pool(pool_id).distributions)

    def is_verified(self) -> bool:
        return all(self.is_pool_verified(p) for p in self._pools)

    # -- payout lifecycle --------------------------------------------------------------

    def _map_records(self, fn: Callable[[DistributionRecord], DistributionRecord]) -> None:
        for entry in self._pools.values():
            entry.distributions = [fn(d) for d in entry.distributions]

    def verify(self, confirm: Callable[[str], bool]) -> int:
        """
        Confirm every issued-but-unverified payout. Returns how many were newly verified.

        Raises VerificationError on the first payout that has no txn id or that `confirm`
        rejects; nothing after it is checked.
        """
        verified = 0

        def check(record: DistributionRecord) -> DistributionRecord:
            nonlocal verified
            payouts = []
            for p in record.payouts:
                if not p.verified:
                    if not p.txn_id or not confirm(p.txn_id):
                        raise VerificationError(
                            "payout could not be confirmed",
                            pool=record.pool,
                            rounds=f"{record.from_round}-{record.to_round}",
                            address=p.address,
                            txn_id=p.txn_id or "<none>",
                        )
                    p = replace(p, verified=True)
                    verified += 1
                payouts.append(p)
            return record.with_payouts(payouts)

        self._map_records(check)
        return verified

    def issue_payments(self, build: PaymentBuilder) -> list[IssuedPayment]:
        """
        Build a payment for every payout that has neither a txn id nor verified status.

        Issued payouts get their txn id recorded; a later run will not issue them again.
        """
        issued: list[IssuedPayment] = []

        def issue(record: DistributionRecord) -> DistributionRecord:
            payouts = []
            for p in record.payouts:
                if not p.verified and not p.txn_id:
                    txn_id, txn = build(record, p)
                    p = replace(p, txn_id=txn_id)
                    issued.append(
                        IssuedPayment(
                            pool=record.pool, from_round=record.from_round, to_round=record.to_round, payout=p, txn=txn
                        )
                    )
                payouts.append(p)
            return record.with_payouts(payouts)

        self._map_records(issue)
        return issued


__all__ = ["PoolEntry", "IssuedPayment", "PaymentBuilder", "RewardLedger"]
