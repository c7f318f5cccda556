from __future__ import annotations

"""
Report figures for one distribution run.

Goal:
- make a run easy to eyeball before the payouts go out
- plot straight from the DistributionRecord and the per-round trace, nothing else
"""

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from lp_rewards.config import DISPLAY_DECIMALS
from lp_rewards.distribution import DistributionRecord


def _short(addr: str) -> str:
    return addr if len(addr) <= 12 else f"{addr[:6]}…{addr[-4:]}"


def plot_payouts(*, record: DistributionRecord, out_png: Path, top_n: int = 25, label: str | None = None) -> None:
    payouts = list(record.payouts)[: int(top_n)]
    scale = 10.0**DISPLAY_DECIMALS
    amounts = np.array([p.amount for p in payouts], dtype=float) / scale
    labels = [_short(p.address) for p in payouts]

    fig, ax = plt.subplots(figsize=(7.5, max(3.0, 0.28 * len(payouts) + 1.2)))
    y = np.arange(len(payouts))
    ax.barh(y, amounts, color="#2b6cb0")
    ax.set_yticks(y)
    ax.set_yticklabels(labels, fontsize=8)
    ax.invert_yaxis()
    ax.set_xlabel("Reward")
    name = label or f"pool {record.pool}"
    ax.set_title(f"Top payouts, {name}, rounds {record.from_round}-{record.to_round}")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=200)
    plt.close(fig)


def plot_round_trace(*, trace: pd.DataFrame, out_png: Path) -> None:
    """TVL and LP supply per round, from `accumulate(..., trace=True)`."""
    if trace is None or trace.empty:
        raise ValueError("round trace is empty; run the accumulation with trace=True")
    scale = 10.0**DISPLAY_DECIMALS
    x = trace["round"].to_numpy(dtype=float)
    tvl = np.array([float(v) for v in trace["tvl"]]) / scale
    supply = np.array([float(v) for v in trace["total_balance"]])

    fig, ax = plt.subplots(figsize=(7.5, 4.2))
    ax.plot(x, tvl, lw=2.0, color="#c53030", label="TVL")
    ax.set_xlabel("Round")
    ax.set_ylabel("TVL")
    ax.grid(True, alpha=0.3)
    ax2 = ax.twinx()
    ax2.plot(x, supply, lw=1.2, color="#2f855a", label="LP supply")
    ax2.set_ylabel("LP supply (base units)")
    lines = ax.get_lines() + ax2.get_lines()
    ax.legend(lines, [ln.get_label() for ln in lines], loc="best")
    ax.set_title("Pool TVL and LP supply per round")
    fig.tight_layout()
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=200)
    plt.close(fig)


def generate_distribution_figures(
    *, out_root: Path, record: DistributionRecord, trace: pd.DataFrame | None = None, label: str | None = None
) -> list[Path]:
    figs = Path(out_root) / "figures"
    figs.mkdir(parents=True, exist_ok=True)
    stem = f"pool{record.pool}_{record.from_round}-{record.to_round}"

    written = []
    if record.payouts:
        p = figs / f"{stem}_01_payouts.png"
        plot_payouts(record=record, out_png=p, label=label)
        written.append(p)
    if trace is not None and not trace.empty:
        p = figs / f"{stem}_02_round_trace.png"
        plot_round_trace(trace=trace, out_png=p)
        written.append(p)
    return written
