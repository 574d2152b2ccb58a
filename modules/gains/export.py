"""
Report Export

- report_to_dict: JSON-friendly nested dict (Decimals as floats, dates ISO)
- trades_to_dataframe: one row per stock/option trade (pandas)
- seal_report: SHA256 audit entry over the inputs and the report
"""

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from core.hashing import create_audit_entry
from lib.parsers.transaction import Transaction
from lib.utils.logging_config import log_dataframe_info, setup_logger
from modules.gains.aggregator import GainsReport
from modules.options.positions import OptionTrade
from modules.tax.tax_events import StockTrade

logger = setup_logger(__name__)

TRADE_COLUMNS = [
    'date', 'asset', 'symbol', 'type', 'quantity', 'price', 'premium',
    'total_cost', 'total_proceeds', 'realized_pl', 'term', 'strategy',
    'is_wash_sale', 'note',
]


def _to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, enums, Decimals and dates to JSON types."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value):
        return {f.name: _to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {_to_plain(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


def report_to_dict(report: GainsReport) -> Dict[str, Any]:
    """Serialize a GainsReport (per-strategy trade lists are omitted, trades appear once)."""
    stock = report.stock_results
    options = report.option_results

    strategies = {}
    for strategy, aggregate in options.strategy_summary.items():
        summary = _to_plain(aggregate)
        summary.pop('trades')
        summary['net_pl'] = float(aggregate.net_pl)
        strategies[strategy.value] = summary

    return {
        'tax_strategy': report.tax_strategy.value,
        'covered_call_policy': report.covered_call_policy,
        'total_realized_gains': float(report.total_realized_gains),
        'total_realized_losses': float(report.total_realized_losses),
        'net_pl': float(report.net_pl),
        'stocks': {
            'total_realized_gains': float(stock.total_realized_gains),
            'total_realized_losses': float(stock.total_realized_losses),
            'short_term_gains': float(stock.short_term_gains),
            'short_term_losses': float(stock.short_term_losses),
            'long_term_gains': float(stock.long_term_gains),
            'long_term_losses': float(stock.long_term_losses),
            'trades': _to_plain(stock.trades),
            'open_positions': _to_plain(stock.open_positions),
        },
        'options': {
            'total_realized_gains': float(options.total_realized_gains),
            'total_realized_losses': float(options.total_realized_losses),
            'short_term_gains': float(options.short_term_gains),
            'short_term_losses': float(options.short_term_losses),
            'win_rate': options.win_rate,
            'strategies': strategies,
            'trades': _to_plain(options.trades),
            'open_positions': _to_plain(options.open_positions),
        },
    }


def _trade_row(trade: Union[StockTrade, OptionTrade]) -> Dict[str, Any]:
    if isinstance(trade, StockTrade):
        notes = [c.note for c in trade.lots if c.note]
        if trade.wash_sale_note:
            notes.append(trade.wash_sale_note)
        return {
            'date': trade.date,
            'asset': 'stock',
            'symbol': trade.symbol,
            'type': trade.type.value,
            'quantity': float(trade.quantity),
            'price': float(trade.price),
            'premium': None,
            'total_cost': float(trade.total_cost),
            'total_proceeds': float(trade.total_proceeds),
            'realized_pl': float(trade.realized_pl),
            'term': trade.term.value if trade.term else None,
            'strategy': None,
            'is_wash_sale': trade.is_wash_sale,
            'note': '; '.join(notes) or None,
        }

    return {
        'date': trade.date,
        'asset': 'option',
        'symbol': trade.symbol,
        'type': trade.type.value,
        'quantity': float(trade.quantity),
        'price': None,
        'premium': float(trade.premium),
        'total_cost': float(trade.total_cost),
        'total_proceeds': float(trade.total_proceeds),
        'realized_pl': float(trade.realized_pl),
        'term': 'SHORT' if trade.is_closing else None,
        'strategy': trade.strategy.value,
        'is_wash_sale': False,
        'note': None,
    }


def trades_to_dataframe(trades: Iterable[Union[StockTrade, OptionTrade]]) -> pd.DataFrame:
    """
    Flatten stock and option trades into one DataFrame.

    Columns: see TRADE_COLUMNS. Rows keep the order of `trades`.
    """
    rows = [_trade_row(t) for t in trades]
    df = pd.DataFrame(rows, columns=TRADE_COLUMNS)

    if not df.empty:
        df['date'] = pd.to_datetime(df['date'])

    log_dataframe_info(logger, df, "Trades")
    return df


def transaction_fingerprint(transactions: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Hashable view of the inputs (raw CSV cells excluded)."""
    return [txn.model_dump(exclude={'raw'}) for txn in transactions]


def seal_report(report: GainsReport, transactions: Iterable[Transaction]) -> Dict[str, Any]:
    """
    Create an audit entry sealing inputs and report.

    Identical transactions and settings produce identical `inputs_hash`
    and `outputs_hash`.
    """
    inputs = {
        'tax_strategy': report.tax_strategy.value,
        'covered_call_policy': report.covered_call_policy,
        'transactions': transaction_fingerprint(transactions),
    }
    event_id = f"GAINS_{report.tax_strategy.value}_{len(inputs['transactions'])}"

    entry = create_audit_entry(event_id, inputs, report_to_dict(report))
    logger.info(f"Sealed gains report {event_id}: {entry['outputs_hash']}")
    return entry
