"""Realized gains report for a brokerage transaction-history CSV.

Usage:
    python -m scripts.gains_report export.csv --strategy HIFO --current-value 25000
    python -m scripts.gains_report export.csv --policy strict --json
"""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from lib.config import EngineConfig
from lib.parsers.brokerage_csv import BrokerageCSVParser, CSVFormatError
from lib.utils.logging_config import setup_logger
from modules.gains.aggregator import GainsReport, calculate_gains_losses
from modules.gains.export import report_to_dict, seal_report
from modules.options.policies import list_available_policies
from modules.quant.returns import calculate_xirr
from modules.tax.tax_events import LotMatchingMethod

logger = setup_logger(__name__)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Realized gains/losses, option strategy P&L and XIRR")
    parser.add_argument("csv_file", type=Path, help="Fidelity or Schwab transaction history export")
    parser.add_argument(
        "--strategy",
        type=str.upper,
        choices=[m.value for m in LotMatchingMethod],
        help="Tax lot matching method (default: TAX_LOT_STRATEGY env or FIFO)",
    )
    parser.add_argument(
        "--policy",
        type=str.lower,
        choices=list_available_policies(),
        help="Covered-call classification (default: COVERED_CALL_POLICY env or assume_covered)",
    )
    parser.add_argument("--current-value", type=_decimal, default=Decimal(0),
                        help="Current portfolio value, added as the final XIRR cash flow")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    return parser


def format_summary(report: GainsReport, xirr_pct: float) -> str:
    options = report.option_results
    lines = [
        f"Tax lot method:        {report.tax_strategy.value}",
        f"Covered-call policy:   {report.covered_call_policy}",
        "",
        f"Realized gains:        {report.total_realized_gains:>14,.2f}",
        f"Realized losses:       {report.total_realized_losses:>14,.2f}",
        f"Net P&L:               {report.net_pl:>14,.2f}",
        f"  short-term net:      {report.short_term_net:>14,.2f}",
        f"  long-term net:       {report.long_term_net:>14,.2f}",
        "",
        f"Option win rate:       {options.win_rate:>13.1f}%",
    ]

    for strategy, aggregate in options.strategy_summary.items():
        if aggregate.trades_count:
            lines.append(
                f"  {strategy.value:<20} {aggregate.trades_count:>4} opened, net {aggregate.net_pl:>12,.2f}"
            )

    wash_sales = report.wash_sale_trades
    if wash_sales:
        lines.append("")
        lines.append(f"Potential wash sales:  {len(wash_sales)}")
        for trade in wash_sales:
            lines.append(f"  {trade.date.date()} {trade.symbol}: {trade.realized_pl:,.2f} ({trade.wash_sale_note})")

    lines.append("")
    lines.append(f"XIRR:                  {xirr_pct:>13.2f}%")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    env_config = EngineConfig.from_env()
    config = EngineConfig(
        tax_strategy=args.strategy or env_config.tax_strategy,
        covered_call_policy=args.policy or env_config.covered_call_policy,
    )

    try:
        content = args.csv_file.read_text(encoding='utf-8-sig', errors='replace')
        transactions = BrokerageCSVParser().parse(content)
        report = calculate_gains_losses(transactions, config=config)
    except FileNotFoundError:
        logger.error(f"CSV file not found: {args.csv_file}")
        return 1
    except (CSVFormatError, ValueError) as e:
        logger.error(f"Cannot build gains report: {e}")
        return 1

    xirr_pct = calculate_xirr(transactions, current_value=args.current_value)

    if args.json:
        output = report_to_dict(report)
        output['xirr'] = xirr_pct
        output['audit'] = {
            key: value for key, value in seal_report(report, transactions).items()
            if key not in ('inputs', 'outputs')
        }
        print(json.dumps(output, indent=2))
    else:
        print(format_summary(report, xirr_pct))

    return 0


if __name__ == "__main__":
    sys.exit(main())
