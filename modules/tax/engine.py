"""
Tax-Lot Matcher - Lot-Based Cost Tracking

Replays stock BUY/SELL transactions in date order and:
1. Tracks lots (specific purchases) per symbol
2. Matches sales to lots using a pluggable selection strategy (FIFO/LIFO/HIFO)
3. Outputs realized StockTrades plus the lots still open

Sales with missing purchase history never fail: the uncovered shares are
booked as an orphaned lot with zero cost basis and a long-term holding
period, and the trade carries a note flagging the assumption.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import math
from abc import ABC, abstractmethod
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from lib.config import LONG_TERM_HOLDING_DAYS
from lib.parsers.transaction import Transaction, TransactionType
from lib.utils.logging_config import setup_logger
from modules.tax.tax_events import (
    ORPHAN_NOTE,
    PARTIAL_ORPHAN_NOTE,
    HoldingTerm,
    LotClosure,
    LotMatchingMethod,
    StockResults,
    StockTrade,
    TaxLot,
    TradeSide,
    classify_trade_term,
)
from modules.tax.wash_sale import detect_wash_sales

logger = setup_logger(__name__)

SECONDS_PER_DAY = 86400


def holding_period_days(acquired, sold) -> int:
    """Whole days held, rounded up: ceil(|sold - acquired| / 1 day)."""
    seconds = abs((sold - acquired).total_seconds())
    return math.ceil(seconds / SECONDS_PER_DAY)


def classify_holding_period(days: int) -> HoldingTerm:
    return HoldingTerm.LONG if days > LONG_TERM_HOLDING_DAYS else HoldingTerm.SHORT


class LotMatchingStrategy(ABC):
    """Base class for lot selection strategies."""

    @abstractmethod
    def select_lot_index(self, open_lots: List[TaxLot]) -> int:
        """
        Pick the lot the next share of a sale is taken from.

        Args:
            open_lots: Non-empty list of open lots for one symbol, in purchase order

        Returns:
            Index into open_lots
        """
        pass

    @abstractmethod
    def get_method_name(self) -> LotMatchingMethod:
        """Return the matching method enum value."""
        pass


class FIFOStrategy(LotMatchingStrategy):
    """First-In, First-Out: oldest lot first."""

    def select_lot_index(self, open_lots: List[TaxLot]) -> int:
        return 0

    def get_method_name(self) -> LotMatchingMethod:
        return LotMatchingMethod.FIFO


class LIFOStrategy(LotMatchingStrategy):
    """Last-In, First-Out: newest lot first."""

    def select_lot_index(self, open_lots: List[TaxLot]) -> int:
        return len(open_lots) - 1

    def get_method_name(self) -> LotMatchingMethod:
        return LotMatchingMethod.LIFO


class HIFOStrategy(LotMatchingStrategy):
    """Highest-In, First-Out: highest cost per share first (earliest lot wins ties)."""

    def select_lot_index(self, open_lots: List[TaxLot]) -> int:
        best_index = 0
        for idx, lot in enumerate(open_lots):
            if lot.cost_per_share > open_lots[best_index].cost_per_share:
                best_index = idx
        return best_index

    def get_method_name(self) -> LotMatchingMethod:
        return LotMatchingMethod.HIFO


STRATEGIES = {
    LotMatchingMethod.FIFO: FIFOStrategy,
    LotMatchingMethod.LIFO: LIFOStrategy,
    LotMatchingMethod.HIFO: HIFOStrategy,
}


def get_strategy(method: Union[str, LotMatchingMethod, None]) -> LotMatchingStrategy:
    """
    Resolve a lot selection strategy.

    Unknown or empty selectors fall back to FIFO; the matcher never fails
    on a bad setting.
    """
    if method is None:
        return FIFOStrategy()
    if isinstance(method, LotMatchingMethod):
        return STRATEGIES[method]()

    try:
        key = LotMatchingMethod(str(method).strip().upper())
    except ValueError:
        logger.warning(f"Unknown lot matching method '{method}', falling back to FIFO")
        return FIFOStrategy()

    return STRATEGIES[key]()


class TaxLotMatcher:
    """
    Stock tax-lot matcher.

    State (open lots, trades, totals) is created per `match()` call, so the
    same matcher can be re-run on the same transactions, or a different
    strategy applied, without residue from a previous run.
    """

    def __init__(self, method: Union[str, LotMatchingMethod, None] = LotMatchingMethod.FIFO):
        self.strategy = get_strategy(method)

    @property
    def method(self) -> LotMatchingMethod:
        return self.strategy.get_method_name()

    def match(self, transactions: Iterable[Transaction]) -> StockResults:
        """
        Process stock transactions and produce realized trades.

        Args:
            transactions: Stock transactions (options and non-trade events are ignored)

        Returns:
            StockResults with trades, totals and remaining open lots
        """
        # sorted() is stable: same-date transactions keep source order
        ordered = sorted(transactions, key=lambda t: t.date)

        results = StockResults(method=self.method)
        open_lots: Dict[str, List[TaxLot]] = defaultdict(list)

        logger.debug(f"Matching {len(ordered)} stock transactions with {self.method.value}")

        for txn in ordered:
            if txn.is_option:
                continue

            if txn.transaction_type == TransactionType.BUY:
                trade = self._handle_buy(txn, open_lots)
            elif txn.transaction_type == TransactionType.SELL:
                trade = self._match_sell(txn, open_lots)
                if trade is not None:
                    self._accumulate(results, trade)
            else:
                continue

            if trade is not None:
                results.trades.append(trade)

        results.open_positions = {
            symbol: lots for symbol, lots in open_lots.items() if lots
        }

        flagged = detect_wash_sales(results.trades, ordered)

        logger.debug(
            f"Generated {len(results.trades)} stock trades "
            f"({len(results.sell_trades)} sells, {flagged} potential wash sales)"
        )
        return results

    def _handle_buy(self, txn: Transaction, open_lots: Dict[str, List[TaxLot]]) -> Optional[StockTrade]:
        if txn.quantity <= 0:
            logger.warning(f"Skipping BUY of {txn.symbol} on {txn.date.date()} with zero quantity")
            return None

        cost_per_share = txn.price + txn.total_fees / txn.quantity

        open_lots[txn.symbol].append(TaxLot(
            symbol=txn.symbol,
            quantity=txn.quantity,
            cost_per_share=cost_per_share,
            acquisition_date=txn.date,
        ))

        return StockTrade(
            date=txn.date,
            symbol=txn.symbol,
            type=TradeSide.BUY,
            quantity=txn.quantity,
            price=txn.price,
            total_cost=txn.quantity * txn.price + txn.total_fees,
        )

    def _match_sell(self, txn: Transaction, open_lots: Dict[str, List[TaxLot]]) -> Optional[StockTrade]:
        if txn.quantity <= 0:
            logger.warning(f"Skipping SELL of {txn.symbol} on {txn.date.date()} with zero quantity")
            return None

        sell_quantity = txn.quantity
        total_proceeds = sell_quantity * txn.price - txn.total_fees
        lots = open_lots.get(txn.symbol, [])

        closures: List[LotClosure] = []
        remaining = sell_quantity

        while remaining > 0 and lots:
            lot_index = self.strategy.select_lot_index(lots)
            lot = lots[lot_index]

            qty_from_lot = min(lot.quantity, remaining)
            days = holding_period_days(lot.acquisition_date, txn.date)

            lot_cost = qty_from_lot * lot.cost_per_share
            lot_proceeds = (qty_from_lot / sell_quantity) * total_proceeds

            closures.append(LotClosure(
                quantity=qty_from_lot,
                cost=lot_cost,
                proceeds=lot_proceeds,
                realized_pl=lot_proceeds - lot_cost,
                term=classify_holding_period(days),
                acquisition_date=lot.acquisition_date,
                days_held=days,
            ))

            lot.quantity -= qty_from_lot
            remaining -= qty_from_lot

            if lot.is_exhausted():
                del lots[lot_index]

        if remaining > 0:
            # Whole sale uncovered, or more shares sold than tracked
            note = ORPHAN_NOTE if not closures else PARTIAL_ORPHAN_NOTE
            orphan_proceeds = total_proceeds if not closures else (remaining / sell_quantity) * total_proceeds

            logger.warning(
                f"Orphaned sell: {txn.symbol} on {txn.date.date()} "
                f"- {remaining} of {sell_quantity} shares have no purchase history, assuming zero cost basis"
            )

            closures.append(LotClosure(
                quantity=remaining,
                cost=Decimal(0),
                proceeds=orphan_proceeds,
                realized_pl=orphan_proceeds,
                term=HoldingTerm.LONG,
                note=note,
            ))

        total_cost = sum((c.cost for c in closures), start=Decimal(0))

        return StockTrade(
            date=txn.date,
            symbol=txn.symbol,
            type=TradeSide.SELL,
            quantity=sell_quantity,
            price=txn.price,
            total_cost=total_cost,
            total_proceeds=total_proceeds,
            realized_pl=total_proceeds - total_cost,
            term=classify_trade_term(closures),
            lots=closures,
        )

    @staticmethod
    def _accumulate(results: StockResults, trade: StockTrade):
        """Add a SELL trade to the gain/loss totals and the per-lot term split."""
        if trade.realized_pl > 0:
            results.total_realized_gains += trade.realized_pl
        else:
            results.total_realized_losses += trade.realized_pl

        for closure in trade.lots:
            if closure.term == HoldingTerm.LONG:
                if closure.realized_pl > 0:
                    results.long_term_gains += closure.realized_pl
                else:
                    results.long_term_losses += closure.realized_pl
            else:
                if closure.realized_pl > 0:
                    results.short_term_gains += closure.realized_pl
                else:
                    results.short_term_losses += closure.realized_pl


def match_stock_transactions(
    transactions: Iterable[Transaction],
    method: Union[str, LotMatchingMethod, None] = LotMatchingMethod.FIFO
) -> StockResults:
    """Convenience wrapper: run a fresh TaxLotMatcher over `transactions`."""
    return TaxLotMatcher(method).match(transactions)
