from __future__ import annotations

"""
Chain adapter: node status, unsigned payout transactions, receipt lookups.

Transactions are built unsigned and returned base64-encoded; signing happens outside
this package (no keys are ever loaded here). The transaction encoding itself is the
SDK's business.
"""

import logging

from algosdk import encoding, logic, transaction
from algosdk.error import IndexerHTTPError
from algosdk.v2client import algod, indexer

from lp_rewards.config import NOTE_BRAND, Settings

logger = logging.getLogger(__name__)


def pool_address(pool_id: int) -> str:
    """The pool application's own account (holds reserves, mints/burns LP tokens)."""
    return str(logic.get_application_address(int(pool_id)))


def payout_note(*, pool: int, tvl: int, from_round: int, to_round: int, brand: str = NOTE_BRAND) -> str:
    return (
        f"{brand}; Liquidity provider reward; "
        f"Pool={int(pool)}; "
        f"TVL={int(tvl)}; "
        f"Round: {int(from_round)}-{int(to_round)};"
    )


def build_payment(
    *,
    params: transaction.SuggestedParams,
    sender: str,
    receiver: str,
    amount: int,
    note: str,
) -> tuple[str, str]:
    """
    Build one unsigned payment. Returns (txn_id, base64 msgpack transaction).
    """
    txn = transaction.PaymentTxn(sender, params, receiver, int(amount), note=note.encode("utf-8"))
    return txn.get_txid(), encoding.msgpack_encode(txn)


class ChainClient:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.algod = algod.AlgodClient(settings.algod_token, settings.algod_url)
        self.indexer = indexer.IndexerClient(settings.indexer_token, settings.indexer_url)

    def latest_round(self) -> int:
        status = self.algod.status()
        return int(status["last-round"])

    def suggested_params(self) -> transaction.SuggestedParams:
        return self.algod.suggested_params()

    def confirm(self, txn_id: str) -> bool:
        """
        True iff the indexer knows a transaction with exactly this id.

        Only "not found"-style HTTP errors count as unconfirmed; connection failures
        propagate to the caller.
        """
        try:
            receipt = self.indexer.transaction(txn_id)
        except IndexerHTTPError as e:
            logger.debug("indexer lookup failed for %s: %s", txn_id, e)
            return False
        txn = receipt.get("transaction") or {}
        if txn.get("id") != txn_id:
            logger.debug("indexer returned %r for %s", txn.get("id"), txn_id)
            return False
        logger.info("confirmed %s in round %s", txn_id, txn.get("confirmed-round"))
        return True


__all__ = ["pool_address", "payout_note", "build_payment", "ChainClient"]
