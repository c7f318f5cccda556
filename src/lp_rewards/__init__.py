"""
Liquidity-provider reward distribution package.

The core is a replay: from a pool's round-ordered event log we rebuild, for every
round of a range, each participant's LP-token balance and the pool TVL, accrue a fixed
reward budget pro rata per round, and turn the accruals into a payout table.
Everything is exact integer arithmetic, so the same log and range always produce the
same payouts.

Around the core sit thin adapters: the analytics service (events, pool/token metadata),
the chain (unsigned payout transactions, receipt lookups) and the persisted ledger that
keeps per-pool cursors and payout status between runs.
"""

__all__ = []
