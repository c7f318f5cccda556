from __future__ import annotations

"""
Error taxonomy for reward distribution runs.

Every error is fatal for the scope it names: core errors abort the whole run (no
partial ledger is written), lookup errors abort only the affected pool.
Context (pool, round, participant, ids) is kept both in the message and as attributes
so a failed run can be diagnosed without re-running it.
"""


class RewardsError(Exception):
    """Base class for all reward-distribution errors."""

    def __init__(self, message: str, **context: object) -> None:
        self.context = {k: v for k, v in context.items() if v is not None}
        for k, v in self.context.items():
            setattr(self, k, v)
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            message = f"{message} ({details})"
        super().__init__(message)


class MalformedEventError(RewardsError, ValueError):
    """A raw event field cannot be parsed as an exact integer (or has the wrong shape)."""


class InconsistentLedgerError(RewardsError, ValueError):
    """Replay found a state the event log cannot produce if it were consistent."""


class UnknownPoolError(RewardsError, LookupError):
    """The analytics service does not list the requested pool."""


class UnknownTokenError(RewardsError, LookupError):
    """A pool references a token the analytics service does not list."""


class VerificationError(RewardsError, RuntimeError):
    """An issued payout could not be confirmed on-ledger; issuing more risks double payment."""


__all__ = [
    "RewardsError",
    "MalformedEventError",
    "InconsistentLedgerError",
    "UnknownPoolError",
    "UnknownTokenError",
    "VerificationError",
]
