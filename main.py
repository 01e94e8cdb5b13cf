"""CLI entry point: python main.py trades.csv --out results.csv"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from src.logging_config import LoggingConfig, LogLevel, configure_logging
from src.reconciliation import (
    BatchReconciliationRunner,
    DataSource,
    ReconciliationConfig,
    build_dispute_records,
    disputes_to_dataframe,
    results_to_dataframe,
    summarize,
    trades_from_dataframe,
)
from src.reconciliation.trades import TRADE_ID_COLUMNS
from src.settings import get_settings

logger = logging.getLogger(__name__)


def load_trades_frame(path: Path) -> pd.DataFrame:
    """Read an uploaded trade dataset (.csv or .xlsx).

    Trade id columns are read as text: ids feed the dispute hash, so
    "000123" must not become 123 and a blank cell must not turn 1001 into 1001.0.
    """
    suffix = path.suffix.lower()
    if suffix == ".xls":
        raise ValueError("legacy .xls workbooks are not supported, save as .xlsx or .csv")
    dtype = {column: str for column in TRADE_ID_COLUMNS}
    if suffix == ".xlsx":
        return pd.read_excel(path, dtype=dtype)
    return pd.read_csv(path, dtype=dtype)


def format_summary(summary) -> str:
    lines = [
        f"  Trades:        {summary.total}",
        f"  Reconciled:    {summary.reconciled}",
        f"  Matched:       {summary.matched}",
        f"  Mismatched:    {summary.mismatched}",
        f"  Not found:     {summary.not_found}",
        f"  Disputed:      {summary.disputed}",
        f"  Match rate:    {summary.match_rate:.1%}",
        f"  Over-billed:   ${summary.total_variance:,.2f}",
    ]
    if summary.by_dispute_type:
        lines.append("  Dispute types:")
        for name, count in sorted(summary.by_dispute_type.items(), key=lambda kv: -kv[1]):
            lines.append(f"    {name:32s} {count}")
    if summary.by_priority:
        lines.append(
            "  Priority:      "
            + ", ".join(f"{k} {v}" for k, v in sorted(summary.by_priority.items()))
        )
    return "\n".join(lines)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Reconcile agent billing against trade data and simulate disputes"
    )
    parser.add_argument("trades", type=Path, help="Trade dataset (.csv or .xlsx)")
    parser.add_argument(
        "--source", choices=[s.value for s in DataSource], default=None,
        help="Force the dataset type (default: read each row's dataSource column)"
    )
    parser.add_argument(
        "--out", type=Path, default=None,
        help="Write per-trade reconciliation results to this CSV"
    )
    parser.add_argument(
        "--disputes-out", type=Path, default=None,
        help="Write the dispute records to this CSV"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Print chunk progress and debug logging"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    log_config = LoggingConfig.from_settings(settings)
    if args.verbose:
        log_config.level = LogLevel.DEBUG
    # stdout carries the report; log lines go to stderr
    configure_logging(log_config, stream=sys.stderr)

    try:
        frame = load_trades_frame(args.trades)
    except (OSError, ValueError) as exc:
        logger.error("Could not read trade dataset %s: %s", args.trades, exc)
        print(f"Error: could not read {args.trades}: {exc}", file=sys.stderr)
        return 1

    source = DataSource(args.source) if args.source else None
    trades = trades_from_dataframe(frame, data_source=source)

    print("=" * 60)
    print("TRADE BILLING RECONCILIATION")
    print(f"Dataset: {args.trades} ({len(trades)} trades)")
    print("=" * 60)

    def show_progress(pct: float) -> None:
        if args.verbose:
            print(f"  ... {pct:5.1f}%")

    runner = BatchReconciliationRunner(config=ReconciliationConfig.from_settings(settings))
    run = runner.run(trades, on_progress=show_progress)

    summary = summarize(run.results)
    print(f"\nRun {run.run_id}")
    print(format_summary(summary))

    records = build_dispute_records(run.results)
    if records:
        print(f"\nDisputes ({len(records)}):")
        for rec in records:
            types = ", ".join(t.value for t in rec.dispute_types)
            print(
                f"  {rec.dispute_id}  {rec.trade_id:12s} {rec.priority.value:6s} "
                f"{rec.department:20s} ${rec.variance:>12,.2f}  {types}"
            )

    if args.out:
        results_to_dataframe(run.results).to_csv(args.out, index=False)
        print(f"\nResults written to {args.out}")
    if args.disputes_out:
        disputes_to_dataframe(records).to_csv(args.disputes_out, index=False)
        print(f"Disputes written to {args.disputes_out}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
