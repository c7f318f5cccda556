from __future__ import annotations

"""
Pool TVL estimate at a round.

The upstream event source emits the pool reserves *after* each event, so the TVL at
round r is read off the last reserve-carrying event at or before r (last write wins),
not summed. Pools are treated as symmetric-value two-asset pools: TVL ~= 2 * reserve[0]
in units of the first asset.

If the source ever switched to emitting reserve deltas this would silently produce
wrong TVL; keep it in sync with the analytics service.
"""

from lp_rewards.events import RESERVE_EVENT_TYPES, EventLog


class TVLEstimator:
    def __init__(self, log: EventLog) -> None:
        self.log = log
        self._reserve_events = log.select(*RESERVE_EVENT_TYPES)

    def tvl_as_of(self, round: int) -> int:
        tvl = 0
        for e in self._reserve_events:
            if e.round > round:
                break
            tvl = e.tvl[0] * 2
            # drained pool: report zero rather than a stale reserve
            if e.tvl[0] == 0 or e.tvl[1] == 0:
                tvl = 0
        return tvl


__all__ = ["TVLEstimator"]
