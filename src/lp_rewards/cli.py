from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from pathlib import Path

from lp_rewards.analytics import AnalyticsClient
from lp_rewards.balances import BalanceReconstructor
from lp_rewards.chain import ChainClient, build_payment, payout_note, pool_address
from lp_rewards.config import EXPLORER_TXN_URL, KNOWN_POOLS, REWARD_SHARE_SCALE, Settings, load_settings
from lp_rewards.distribution import DistributionBuilder, DistributionRecord, Payout
from lp_rewards.errors import RewardsError, UnknownPoolError, UnknownTokenError
from lp_rewards.events import EventLog
from lp_rewards.export import format_amount, write_payouts_csv, write_run_outputs, write_txns
from lp_rewards.ledger import RewardLedger
from lp_rewards.plots import generate_distribution_figures
from lp_rewards.rewards import RewardAccumulator
from lp_rewards.tvl import TVLEstimator

logger = logging.getLogger(__name__)


def _settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    if getattr(args, "data_dir", None) is not None:
        settings = replace(settings, data_dir=Path(args.data_dir).resolve())
    return settings


def _load_events(args: argparse.Namespace, settings: Settings, pool: int) -> EventLog:
    if getattr(args, "events", None) is not None:
        return EventLog.from_json(Path(args.events), pool=pool)
    return AnalyticsClient.from_settings(settings).pool_events(pool)


def _apr_for(pool: int, default: float = 0.0) -> float:
    for kp in KNOWN_POOLS:
        if kp.pool_id == pool:
            return kp.apr
    return default


def _print_record(record: DistributionRecord, label: str) -> None:
    print()
    print("Pool:  ", record.pool, label)
    print("Range: ", f"{record.from_round}-{record.to_round}")
    print("TVL:   ", format_amount(record.tvl))
    print("Reward:", format_amount(record.reward))
    print()
    for p in record.payouts:
        print(p.address, format_amount(p.amount).rjust(16), "  |  ", format_amount(p.tvl))


def cmd_run(args: argparse.Namespace) -> None:
    settings = _settings(args)
    ledger = RewardLedger.load(settings.ledger_path, create=True)
    for kp in KNOWN_POOLS:
        ledger.add_pool(kp.pool_id, kp.apr)

    chain = ChainClient(settings)
    newly = ledger.verify(chain.confirm)
    print("[info] verified", newly, "previously issued payouts")

    analytics = AnalyticsClient.from_settings(settings)
    to_round = int(args.to_round) if args.to_round is not None else chain.latest_round()
    builder = DistributionBuilder()

    built: list[tuple[int, int]] = []
    for pool in ledger.pool_ids():
        from_round = ledger.next_round(pool)
        if from_round > to_round:
            print(f"[info] pool {pool}: already distributed up to round {from_round - 1}")
            continue
        try:
            alpha, beta = analytics.pool_symbols(pool)
        except (UnknownPoolError, UnknownTokenError) as e:
            print(f"[warn] skipping pool {pool}: {e}")
            continue
        events = analytics.pool_events(pool)
        record, _acc = builder.run(
            events,
            pool=pool,
            pool_account=pool_address(pool),
            from_round=from_round,
            to_round=to_round,
            apr=ledger.get_pool(pool).apr,
            progress=bool(args.progress),
        )
        ledger.add_distribution(record)
        built.append((pool, from_round))
        _print_record(record, f"{alpha}/{beta}")

    if args.soft:
        print()
        print("[info] --soft: nothing issued, ledger not written")
        return

    distributor = args.distributor or settings.distributor
    if not distributor:
        raise SystemExit("[error] no distributor address: pass --distributor or set LP_REWARDS_DISTRIBUTOR")

    params = chain.suggested_params()

    def build(record: DistributionRecord, payout: Payout) -> tuple[str, str]:
        note = payout_note(pool=record.pool, tvl=record.tvl, from_round=record.from_round, to_round=record.to_round)
        return build_payment(
            params=params, sender=distributor, receiver=payout.address, amount=payout.amount, note=note
        )

    issued = ledger.issue_payments(build)
    this_run = set(built)
    records = [d for d in ledger.distributions() if (d.pool, d.from_round) in this_run]
    txns_path = write_txns(out_path=settings.txns_path, issued=issued)
    paths = write_run_outputs(out_dir=settings.data_dir, records=records, issued=issued)
    ledger.save(settings.ledger_path)
    print()
    print("[info] wrote", txns_path, f"({len(issued)} unsigned transactions)")
    for p in paths.values():
        print("[info] wrote", p)
    print("[info] wrote", settings.ledger_path)


def cmd_verify(args: argparse.Namespace) -> None:
    settings = _settings(args)
    ledger = RewardLedger.load(settings.ledger_path)
    chain = ChainClient(settings)
    newly = ledger.verify(chain.confirm)
    for d in ledger.distributions():
        for p in d.payouts:
            if p.txn_id:
                logger.info("%s", EXPLORER_TXN_URL.format(txn_id=p.txn_id))
    ledger.save(settings.ledger_path)
    print("[info] verified", newly, "payouts; ledger fully verified:", ledger.is_verified())


def cmd_snapshot(args: argparse.Namespace) -> None:
    settings = _settings(args)
    pool = int(args.pool)
    events = _load_events(args, settings, pool)
    accumulator = RewardAccumulator(
        BalanceReconstructor(events, pool_account=pool_address(pool), pool_id=pool),
        TVLEstimator(events),
    )
    acc = accumulator.accumulate(
        int(args.from_round),
        int(args.to_round),
        int(args.budget),
        trace=args.trace_csv is not None,
        progress=bool(args.progress),
    )
    print("[info] reward per round:", acc.per_round)
    for addr, value in sorted(acc.rewards.items(), key=lambda kv: kv[1], reverse=True):
        if value == 0:
            continue
        print(addr, format_amount(value))
    print("TVL:", format_amount(acc.average_tvl))
    if args.trace_csv is not None:
        out = Path(args.trace_csv)
        out.parent.mkdir(parents=True, exist_ok=True)
        acc.trace.to_csv(out, index=False)
        print("[info] wrote", out)


def cmd_export(args: argparse.Namespace) -> None:
    settings = _settings(args)
    ledger = RewardLedger.load(settings.ledger_path)
    out = Path(args.out) if args.out is not None else settings.data_dir / "payouts.csv"
    write_payouts_csv(out_csv=out, records=ledger.distributions())
    print("[info] wrote", out)


def cmd_plots(args: argparse.Namespace) -> None:
    settings = _settings(args)
    pool = int(args.pool)
    events = _load_events(args, settings, pool)
    apr = float(args.apr) if args.apr is not None else _apr_for(pool)
    record, acc = DistributionBuilder().run(
        events,
        pool=pool,
        pool_account=pool_address(pool),
        from_round=int(args.from_round),
        to_round=int(args.to_round),
        apr=apr,
        trace=True,
        progress=bool(args.progress),
    )
    out_root = Path(args.out) if args.out is not None else settings.data_dir
    for p in generate_distribution_figures(out_root=out_root, record=record, trace=acc.trace):
        print("[info] wrote", p)


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(
        prog="lp-rewards", description="Liquidity-provider reward distributions from replayed pool events."
    )
    p.add_argument("--data-dir", type=Path, default=None, help="Ledger/output directory (defaults to ./data).")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    p.add_argument("--progress", action="store_true", help="Show a progress bar while replaying rounds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("run", help="Verify issued payouts, then build and issue the next distribution per pool.")
    r.add_argument("--soft", action="store_true", help="Compute and print only; issue nothing, write nothing.")
    r.add_argument("--to-round", type=int, default=None, help="Last round to reward (defaults to the latest round).")
    r.add_argument("--distributor", default=None, help="Sender address of the payout transactions.")
    r.set_defaults(func=cmd_run)

    v = sub.add_parser("verify", help="Confirm issued payouts on-ledger and mark them verified.")
    v.set_defaults(func=cmd_verify)

    s = sub.add_parser("snapshot", help="One-off accrual over a historical round range.")
    s.add_argument("--pool", type=int, required=True)
    s.add_argument("--from-round", type=int, required=True)
    s.add_argument("--to-round", type=int, required=True)
    s.add_argument("--budget", type=int, default=REWARD_SHARE_SCALE)
    s.add_argument("--events", type=Path, default=None, help="JSON event dump instead of the analytics service.")
    s.add_argument("--trace-csv", type=Path, default=None, help="Write the per-round trace to this CSV.")
    s.set_defaults(func=cmd_snapshot)

    e = sub.add_parser("export", help="CSV of every payout in the ledger.")
    e.add_argument("--out", type=Path, default=None)
    e.set_defaults(func=cmd_export)

    pl = sub.add_parser("plots", help="Payout and per-round TVL figures for one pool and range.")
    pl.add_argument("--pool", type=int, required=True)
    pl.add_argument("--from-round", type=int, required=True)
    pl.add_argument("--to-round", type=int, required=True)
    pl.add_argument("--apr", type=float, default=None)
    pl.add_argument("--events", type=Path, default=None)
    pl.add_argument("--out", type=Path, default=None)
    pl.set_defaults(func=cmd_plots)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except RewardsError as exc:
        raise SystemExit(f"[error] {exc}") from exc


if __name__ == "__main__":
    main()
