from __future__ import annotations

"""
Payout table construction.

Accruals from `RewardAccumulator` are shares of a fixed scale (the budget the
accumulation ran with). A payout converts a share into:

  amount = accrued * total_reward // scale
  tvl    = average_tvl * accrued // scale     (implied TVL share)

The TVL share is attributed through the reward-share ratio, not through the LP
ownership fraction at any single round. It is an approximation used for reporting.

Ordering of payouts is for display only (accrual desc, stable); no amount depends on it.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from fractions import Fraction

from lp_rewards.balances import BalanceReconstructor
from lp_rewards.config import REWARD_SHARE_SCALE, ROUNDS_PER_YEAR
from lp_rewards.events import EventLog
from lp_rewards.rewards import AccumulationResult, RewardAccumulator, round_count
from lp_rewards.tvl import TVLEstimator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Payout:
    address: str
    amount: int
    tvl: int
    txn_id: str = ""
    verified: bool = False

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "amount": str(self.amount),
            "tvl": str(self.tvl),
            "txnId": self.txn_id,
            "verified": bool(self.verified),
        }

    @classmethod
    def from_dict(cls, d: Mapping) -> Payout:
        return cls(
            address=str(d["address"]),
            amount=int(d["amount"]),
            tvl=int(d["tvl"]),
            txn_id=str(d.get("txnId") or ""),
            verified=bool(d.get("verified", False)),
        )


@dataclass(frozen=True)
class DistributionRecord:
    pool: int
    from_round: int
    to_round: int
    tvl: int
    reward: int
    payouts: tuple[Payout, ...] = ()

    @property
    def total_paid(self) -> int:
        return sum(p.amount for p in self.payouts)

    @property
    def is_verified(self) -> bool:
        return all(p.verified for p in self.payouts)

    def with_payouts(self, payouts: Iterable[Payout]) -> DistributionRecord:
        return replace(self, payouts=tuple(payouts))

    def to_dict(self) -> dict:
        return {
            "fromRound": self.from_round,
            "toRound": self.to_round,
            "tvl": str(self.tvl),
            "reward": str(self.reward),
            "payouts": [p.to_dict() for p in self.payouts],
        }

    @classmethod
    def from_dict(cls, d: Mapping, *, pool: int) -> DistributionRecord:
        return cls(
            pool=int(pool),
            from_round=int(d["fromRound"]),
            to_round=int(d["toRound"]),
            tvl=int(d["tvl"]),
            reward=int(d["reward"]),
            payouts=tuple(Payout.from_dict(p) for p in d.get("payouts", [])),
        )


def reward_for_apr(
    average_tvl: int, apr: float | str | Fraction, rounds: int, *, rounds_per_year: int = ROUNDS_PER_YEAR
) -> int:
    """
    Total reward for `rounds` rounds at a yearly rate `apr` on `average_tvl`.

    The APR is taken as an exact decimal (0.14375 -> 14375/100000), so the result is a
    floor of an exact rational.
    """
    rate = apr if isinstance(apr, Fraction) else Fraction(str(apr))
    if not 0 <= rate <= 1:
        raise ValueError(f"APR must be between 0 and 1, got {apr}")
    return int(average_tvl * rate * int(rounds) / int(rounds_per_year))


class DistributionBuilder:
    def __init__(self, *, scale: int = REWARD_SHARE_SCALE) -> None:
        if scale <= 0:
            raise ValueError("scale must be positive")
        self.scale = int(scale)

    def build(
        self,
        accumulation: Mapping[str, int],
        average_tvl: int,
        total_reward: int,
        *,
        pool: int,
        from_round: int,
        to_round: int,
    ) -> DistributionRecord:
        ranked = sorted(((a, v) for a, v in accumulation.items() if v != 0), key=lambda kv: kv[1], reverse=True)
        payouts = tuple(
            Payout(
                address=addr,
                amount=accrued * int(total_reward) // self.scale,
                tvl=int(average_tvl) * accrued // self.scale,
            )
            for addr, accrued in ranked
        )
        return DistributionRecord(
            pool=int(pool),
            from_round=int(from_round),
            to_round=int(to_round),
            tvl=int(average_tvl),
            reward=int(total_reward),
            payouts=payouts,
        )

    def run(
        self,
        log: EventLog,
        *,
        pool: int,
        pool_account: str,
        from_round: int,
        to_round: int,
        apr: float,
        trace: bool = False,
        progress: bool = False,
    ) -> tuple[DistributionRecord, AccumulationResult]:
        """
        Replay `log` over [from_round, to_round] and price the result at `apr`.
        """
        accumulator = RewardAccumulator(
            BalanceReconstructor(log, pool_account=pool_account, pool_id=pool),
            TVLEstimator(log),
        )
        acc = accumulator.accumulate(from_round, to_round, self.scale, trace=trace, progress=progress)
        reward = reward_for_apr(acc.average_tvl, apr, round_count(from_round, to_round))
        record = self.build(
            acc.rewards, acc.average_tvl, reward, pool=pool, from_round=from_round, to_round=to_round
        )
        logger.info(
            "pool %d rounds %d-%d: tvl=%d reward=%d payouts=%d",
            pool,
            from_round,
            to_round,
            record.tvl,
            record.reward,
            len(record.payouts),
        )
        return record, acc


__all__ = ["Payout", "DistributionRecord", "reward_for_apr", "DistributionBuilder"]
