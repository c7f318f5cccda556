from __future__ import annotations

"""
Run outputs: payout CSV/JSON, the transaction list to sign, display formatting.

Integer amounts are written as exact integers; only `format_amount` converts to a
human-readable decimal.
"""

import json
import time
from collections.abc import Iterable, Sequence
from decimal import Decimal
from pathlib import Path

import pandas as pd

from lp_rewards.config import DISPLAY_DECIMALS
from lp_rewards.distribution import DistributionRecord
from lp_rewards.ledger import IssuedPayment

PAYOUT_COLUMNS = ["pool", "user", "round_from", "round_to", "tvl", "user_tvl", "amount", "txid", "verified"]


def _json_dumps(obj: object) -> str:
    return json.dumps(obj, indent=2, sort_keys=True) + "\n"


def format_amount(value: int, decimals: int = DISPLAY_DECIMALS) -> str:
    """1234567891 -> '1,234.567891' (base units -> display units)."""
    q = Decimal(int(value)).scaleb(-int(decimals))
    return f"{q:,.{int(decimals)}f}"


def payouts_frame(records: Iterable[DistributionRecord]) -> pd.DataFrame:
    rows = [
        {
            "pool": r.pool,
            "user": p.address,
            "round_from": r.from_round,
            "round_to": r.to_round,
            "tvl": r.tvl,
            "user_tvl": p.tvl,
            "amount": p.amount,
            "txid": p.txn_id,
            "verified": p.verified,
        }
        for r in records
        for p in r.payouts
    ]
    # object dtype keeps arbitrary-precision ints exact
    return pd.DataFrame(rows, columns=PAYOUT_COLUMNS, dtype=object)


def write_payouts_csv(*, out_csv: Path, records: Iterable[DistributionRecord]) -> Path:
    out_csv = Path(out_csv)
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    payouts_frame(records).to_csv(out_csv, index=False)
    return out_csv


def write_txns(*, out_path: Path, issued: Sequence[IssuedPayment]) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(",".join(i.txn for i in issued))
    return out_path


def write_run_outputs(
    *,
    out_dir: Path,
    records: Sequence[DistributionRecord],
    issued: Sequence[IssuedPayment] = (),
    stamp: int | None = None,
) -> dict[str, Path]:
    """
    Per-run snapshot named by unix time: `<stamp>.json`, `<stamp>.csv`, `<stamp>.txns`.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time()) if stamp is None else int(stamp)

    out_json = out_dir / f"{stamp}.json"
    out_json.write_text(_json_dumps([{"pool": r.pool, **r.to_dict()} for r in records]))
    paths = {
        "json": out_json,
        "csv": write_payouts_csv(out_csv=out_dir / f"{stamp}.csv", records=records),
    }
    if issued:
        paths["txns"] = write_txns(out_path=out_dir / f"{stamp}.txns", issued=issued)
    return paths


__all__ = [
    "PAYOUT_COLUMNS",
    "format_amount",
    "payouts_frame",
    "write_payouts_csv",
    "write_txns",
    "write_run_outputs",
]
