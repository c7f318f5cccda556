from __future__ import annotations

"""
Per-round reward accrual.

For each round r in [from_round, to_round] (inclusive, strictly in order):

  balances = balances_as_of(r);  total = sum(balances)
  if total != 0:  reward[p] += per_round * balances[p] // total
  tvl_sum += tvl_as_of(r)

with per_round = budget // round_count fixed before the loop and
round_count = to_round - from_round + 1.

All arithmetic is exact integer floor division, so the result is deterministic and
never exceeds the budget. Two things are forfeited on purpose and must not be
redistributed: the per-round truncation remainder, and the whole quota of rounds
where nobody holds LP tokens.
"""

import logging
from dataclasses import dataclass, field

import pandas as pd
from tqdm import tqdm

from lp_rewards.balances import BalanceReconstructor
from lp_rewards.tvl import TVLEstimator

logger = logging.getLogger(__name__)

RewardAccumulation = dict[str, int]


def round_count(from_round: int, to_round: int) -> int:
    if to_round < from_round:
        raise ValueError(f"empty round range: from_round={from_round} > to_round={to_round}")
    return int(to_round) - int(from_round) + 1


@dataclass(frozen=True)
class AccumulationResult:
    rewards: RewardAccumulation
    average_tvl: int
    budget: int
    per_round: int
    from_round: int
    to_round: int
    trace: pd.DataFrame | None = field(default=None, compare=False, repr=False)

    @property
    def distributed(self) -> int:
        return sum(self.rewards.values())

    def __iter__(self):
        # allows `rewards, average_tvl = accumulator.accumulate(...)`
        return iter((self.rewards, self.average_tvl))


class RewardAccumulator:
    def __init__(self, balances: BalanceReconstructor, tvl: TVLEstimator) -> None:
        self.balances = balances
        self.tvl = tvl

    def accumulate(
        self,
        from_round: int,
        to_round: int,
        reward_budget: int,
        *,
        trace: bool = False,
        progress: bool = False,
    ) -> AccumulationResult:
        n = round_count(from_round, to_round)
        if reward_budget < 0:
            raise ValueError(f"reward_budget must be non-negative, got {reward_budget}")
        per_round = int(reward_budget) // n

        rewards: RewardAccumulation = {}
        tvl_sum = 0
        rows = []
        skipped = 0

        it = range(int(from_round), int(to_round) + 1)
        if progress:
            it = tqdm(it, desc=f"reward replay ({from_round}-{to_round})")
        for r in it:
            balances = self.balances.balances_as_of(r)
            total = sum(balances.values())
            tvl = self.tvl.tvl_as_of(r)
            tvl_sum += tvl

            paid = 0
            if total == 0:
                skipped += 1
            else:
                for addr, bal in balances.items():
                    if addr not in rewards:
                        rewards[addr] = 0
                    if bal == 0:
                        continue
                    share = per_round * bal // total
                    rewards[addr] += share
                    paid += share

            if trace:
                rows.append({"round": r, "total_balance": total, "tvl": tvl, "distributed": paid})

        average_tvl = tvl_sum // n
        if skipped:
            logger.info("%d of %d rounds had no LP supply; their quota is forfeited", skipped, n)
        logger.debug(
            "accumulated rounds %d-%d: per_round=%d distributed=%d average_tvl=%d",
            from_round,
            to_round,
            per_round,
            sum(rewards.values()),
            average_tvl,
        )
        return AccumulationResult(
            rewards=rewards,
            average_tvl=average_tvl,
            budget=int(reward_budget),
            per_round=per_round,
            from_round=int(from_round),
            to_round=int(to_round),
            trace=pd.DataFrame(rows, columns=["round", "total_balance", "tvl", "distributed"], dtype=object)
            if trace
            else None,
        )


__all__ = ["RewardAccumulation", "round_count", "AccumulationResult", "RewardAccumulator"]
