from __future__ import annotations

"""
LP-token balance reconstruction by prefix replay.

balances_as_of(r) re-scans the log from the first event on every call. That is
O(|log|) per round and O(rounds * |log|) per distribution, which is fine for the sizes
we run and keeps each round's state independently auditable.

Effects (LP-token column only):
  ADD_LIQUIDITY     sender   += out[LP]
  REMOVE_LIQUIDITY  sender   -= in[LP]     (sender must already be tracked)
  TRANSFER          sender   -= in[LP]     unless sender is the pool account
                    receiver += out[LP]    unless receiver is the pool account
  SWAP              no effect
"""

import logging

from lp_rewards.errors import InconsistentLedgerError
from lp_rewards.events import LP_TOKEN_INDEX, EventLog, EventType, PoolEvent

logger = logging.getLogger(__name__)

ParticipantBalance = dict[str, int]


class BalanceReconstructor:
    """
    Pure function of (log, round); holds no state between calls.

    pool_account: the pool's own application account. Transfers from/to it are the
    pool's internal bookkeeping and are excluded from participant balances.
    """

    def __init__(self, log: EventLog, *, pool_account: str, pool_id: int | None = None) -> None:
        self.log = log
        self.pool_account = str(pool_account)
        self.pool_id = pool_id

    def _fail(self, msg: str, e: PoolEvent, participant: str | None) -> InconsistentLedgerError:
        pool = self.pool_id if self.pool_id is not None else e.pool
        return InconsistentLedgerError(msg, pool=pool, round=e.round, participant=participant, event_id=e.id)

    def balances_as_of(self, round: int) -> ParticipantBalance:
        balances: ParticipantBalance = {}
        # EventLog guarantees non-decreasing rounds, so the first later event ends the prefix
        for e in self.log:
            if e.round > round:
                break

            if e.type is EventType.ADD_LIQUIDITY:
                balances[e.sender] = balances.get(e.sender, 0) + e.amount_out[LP_TOKEN_INDEX]
                self._check(balances, e, e.sender)
            elif e.type is EventType.REMOVE_LIQUIDITY:
                if e.sender not in balances:
                    raise self._fail("liquidity removed by a participant with no recorded balance", e, e.sender)
                balances[e.sender] -= e.amount_in[LP_TOKEN_INDEX]
                self._check(balances, e, e.sender)
            elif e.type is EventType.TRANSFER:
                if e.sender != self.pool_account:
                    if e.sender not in balances and e.amount_in[LP_TOKEN_INDEX] != 0:
                        raise self._fail("LP tokens transferred out by a participant with no recorded balance", e, e.sender)
                    balances[e.sender] = balances.get(e.sender, 0) - e.amount_in[LP_TOKEN_INDEX]
                    self._check(balances, e, e.sender)
                if e.receiver is not None and e.receiver != self.pool_account:
                    balances[e.receiver] = balances.get(e.receiver, 0) + e.amount_out[LP_TOKEN_INDEX]
                    self._check(balances, e, e.receiver)
        return balances

    def _check(self, balances: ParticipantBalance, e: PoolEvent, participant: str) -> None:
        if balances[participant] < 0:
            raise self._fail(f"negative LP balance {balances[participant]}", e, participant)


__all__ = ["ParticipantBalance", "BalanceReconstructor"]
