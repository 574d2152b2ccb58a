"""
Options Strategy Engine

Replays option transactions in date order, attributes each opening trade
to a strategy (covered call, cash-secured put, long call/put, ...) and
matches closes against a FIFO queue of open positions per option symbol.
Option matching is always FIFO, independent of the stock lot method.

Closing events:
- BUY_CLOSE  closes shorts:  P&L = premium collected at open - premium paid
- SELL_CLOSE closes longs:   P&L = premium received - premium paid at open
- EXPIRED    short keeps the full premium, long loses it
- ASSIGNED   the short option's premium is realized as a gain
             (share delivery is handled by the stock ledger, not here)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from collections import defaultdict, deque
from decimal import Decimal
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Set, Union

from lib.config import DEFAULT_COVERED_CALL_POLICY
from lib.parsers.transaction import Transaction, TransactionType
from lib.utils.logging_config import setup_logger
from modules.options.policies import CoveredCallPolicy, get_policy
from modules.options.positions import (
    OptionPosition,
    OptionResults,
    OptionStrategy,
    OptionTrade,
    OptionTradeType,
    PositionSide,
)
from modules.options.symbols import OptionType, get_option_type, get_underlying_symbol
from modules.tax.tax_events import TaxLot

logger = setup_logger(__name__)


def shares_owned(stock_positions: Mapping[str, List[TaxLot]], underlying_symbol: str) -> Decimal:
    """Total shares across the open lots of a symbol."""
    return sum(
        (lot.quantity for lot in stock_positions.get(underlying_symbol, [])),
        start=Decimal(0)
    )


def collect_ownership_evidence(transactions: Iterable[Transaction]) -> Set[str]:
    """
    Symbols the account demonstrably held at some point.

    Evidence: dividends received, calls assigned (the shares were called
    away), sales of assigned shares, and regular stock sales.
    """
    owned: Set[str] = set()

    for txn in transactions:
        symbol = txn.symbol.replace('-', '')

        if txn.transaction_type == TransactionType.DIVIDEND:
            owned.add(symbol)
        elif txn.transaction_type == TransactionType.OPTION_ASSIGNED:
            if get_option_type(symbol) == OptionType.CALL:
                owned.add(get_underlying_symbol(symbol))
        elif txn.transaction_type == TransactionType.SELL:
            owned.add(symbol)

        action = txn.action.upper()
        if 'SOLD' in action and 'ASSIGNED' in action:
            owned.add(symbol)

    return owned


class OptionStrategyEngine:
    """
    Option position matcher and strategy classifier.

    Position queues and strategy totals are created per `match()` call.
    """

    def __init__(self, covered_call_policy: Union[str, CoveredCallPolicy, None] = None):
        if isinstance(covered_call_policy, CoveredCallPolicy):
            self.policy = covered_call_policy
        else:
            self.policy = get_policy(covered_call_policy or DEFAULT_COVERED_CALL_POLICY)

    def match(
        self,
        transactions: Iterable[Transaction],
        stock_positions: Optional[Mapping[str, List[TaxLot]]] = None,
        owned_symbols: Optional[Set[str]] = None
    ) -> OptionResults:
        """
        Process option transactions.

        Args:
            transactions: Option transactions (non-option events are ignored)
            stock_positions: Open stock lots per symbol, used for covered-call classification
            owned_symbols: Underlyings with ownership evidence

        Returns:
            OptionResults with trades, per-strategy summary and win rate
        """
        stock_positions = stock_positions or {}
        owned_symbols = owned_symbols or set()

        ordered = sorted(transactions, key=lambda t: t.date)
        results = OptionResults()
        positions: Dict[str, Deque[OptionPosition]] = defaultdict(deque)

        handlers = {
            TransactionType.OPTION_SELL_OPEN: self._sell_open,
            TransactionType.OPTION_BUY_OPEN: self._buy_open,
            TransactionType.OPTION_BUY_CLOSE: self._buy_close,
            TransactionType.OPTION_SELL_CLOSE: self._sell_close,
            TransactionType.OPTION_EXPIRED: self._expire,
            TransactionType.OPTION_ASSIGNED: self._assign,
        }

        for txn in ordered:
            handler = handlers.get(txn.transaction_type)
            if handler is None or not txn.is_option:
                continue

            symbol = txn.symbol.replace('-', '')
            trade = handler(txn, symbol, positions[symbol], results, stock_positions, owned_symbols)
            if trade is None:
                continue

            results.trades.append(trade)
            results.strategy_summary[trade.strategy].trades.append(trade)

        results.open_positions = {
            symbol: list(queue) for symbol, queue in positions.items() if queue
        }
        results.win_rate = self.calculate_win_rate(results.trades)

        logger.debug(
            f"Generated {len(results.trades)} option trades, "
            f"{len(results.closed_trades)} closed, win rate {results.win_rate:.1f}%"
        )
        return results

    @staticmethod
    def calculate_win_rate(trades: List[OptionTrade]) -> float:
        """Percentage of closed trades with positive realized P&L (0 when none closed)."""
        closed = [t for t in trades if t.is_closing]
        if not closed:
            return 0.0
        winners = [t for t in closed if t.realized_pl > 0]
        return len(winners) / len(closed) * 100

    # ------------------------------------------------------------------
    # Opening trades
    # ------------------------------------------------------------------

    def _sell_open(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if txn.quantity <= 0:
            logger.warning(f"Skipping SELL_OPEN of {symbol} on {txn.date.date()} with zero quantity")
            return None

        premium_collected = abs(txn.amount)
        underlying = get_underlying_symbol(symbol)
        option_type = get_option_type(symbol)

        if option_type == OptionType.CALL:
            strategy = self.policy.classify_short_call(
                txn.quantity,
                shares_owned(stock_positions, underlying),
                underlying in owned_symbols,
            )
        else:
            strategy = OptionStrategy.CASH_SECURED_PUTS

        queue.append(OptionPosition(
            quantity=txn.quantity,
            premium_per_contract=premium_collected / txn.quantity,
            open_date=txn.date,
            side=PositionSide.SHORT,
            strategy=strategy,
            option_type=option_type,
        ))

        aggregate = results.strategy_summary[strategy]
        aggregate.premium_collected += premium_collected
        aggregate.trades_count += 1

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=underlying,
            type=OptionTradeType.SELL_OPEN,
            option_type=option_type,
            strategy=strategy,
            quantity=txn.quantity,
            premium=premium_collected,
        )

    def _buy_open(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if txn.quantity <= 0:
            logger.warning(f"Skipping BUY_OPEN of {symbol} on {txn.date.date()} with zero quantity")
            return None

        premium_paid = abs(txn.amount)
        option_type = get_option_type(symbol)
        strategy = OptionStrategy.LONG_CALLS if option_type == OptionType.CALL else OptionStrategy.LONG_PUTS

        queue.append(OptionPosition(
            quantity=txn.quantity,
            premium_per_contract=premium_paid / txn.quantity,
            open_date=txn.date,
            side=PositionSide.LONG,
            strategy=strategy,
            option_type=option_type,
        ))

        aggregate = results.strategy_summary[strategy]
        aggregate.premium_paid += premium_paid
        aggregate.trades_count += 1

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=get_underlying_symbol(symbol),
            type=OptionTradeType.BUY_OPEN,
            option_type=option_type,
            strategy=strategy,
            quantity=txn.quantity,
            premium=premium_paid,
        )

    # ------------------------------------------------------------------
    # Closing trades
    # ------------------------------------------------------------------

    @staticmethod
    def _consume(queue: Deque[OptionPosition], quantity: Decimal, symbol: str):
        """
        Take `quantity` contracts from the front of the queue.

        Returns:
            (opening premium of the consumed contracts, strategy of the last consumed position)
        """
        remaining = quantity
        opening_premium = Decimal(0)
        strategy = queue[0].strategy

        while remaining > 0 and queue:
            position = queue[0]
            strategy = position.strategy

            if position.quantity <= remaining:
                opening_premium += position.premium
                remaining -= position.quantity
                queue.popleft()
            else:
                opening_premium += remaining * position.premium_per_contract
                position.quantity -= remaining
                remaining = Decimal(0)

        if remaining > 0:
            logger.warning(f"Closed {remaining} more {symbol} contracts than were open")

        return opening_premium, strategy

    def _buy_close(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if not queue:
            logger.warning(f"BUY_CLOSE of {symbol} on {txn.date.date()} has no open position, skipping")
            return None

        premium_paid = abs(txn.amount)
        premium_collected, strategy = self._consume(queue, txn.quantity, symbol)
        realized_pl = premium_collected - premium_paid

        aggregate = results.strategy_summary[strategy]
        if realized_pl > 0:
            aggregate.premium_retained += realized_pl
        else:
            aggregate.premium_lost += abs(realized_pl)
        self._book(results, realized_pl)

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=get_underlying_symbol(symbol),
            type=OptionTradeType.BUY_CLOSE,
            option_type=get_option_type(symbol),
            strategy=strategy,
            quantity=txn.quantity,
            premium=premium_paid,
            total_proceeds=premium_collected,
            total_cost=premium_paid,
            realized_pl=realized_pl,
        )

    def _sell_close(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if not queue:
            logger.warning(f"SELL_CLOSE of {symbol} on {txn.date.date()} has no open position, skipping")
            return None

        premium_received = abs(txn.amount)
        premium_paid, strategy = self._consume(queue, txn.quantity, symbol)
        realized_pl = premium_received - premium_paid

        aggregate = results.strategy_summary[strategy]
        if realized_pl > 0:
            aggregate.gains += realized_pl
        else:
            aggregate.losses += abs(realized_pl)
        self._book(results, realized_pl)

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=get_underlying_symbol(symbol),
            type=OptionTradeType.SELL_CLOSE,
            option_type=get_option_type(symbol),
            strategy=strategy,
            quantity=txn.quantity,
            premium=premium_received,
            total_proceeds=premium_received,
            total_cost=premium_paid,
            realized_pl=realized_pl,
        )

    def _expire(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if not queue:
            logger.warning(f"EXPIRED {symbol} on {txn.date.date()} has no open position, skipping")
            return None

        position = queue.popleft()
        aggregate = results.strategy_summary[position.strategy]

        if position.side == PositionSide.SHORT:
            realized_pl = position.premium
            total_proceeds, total_cost = position.premium, Decimal(0)
            aggregate.premium_retained += realized_pl
        else:
            realized_pl = -position.premium
            total_proceeds, total_cost = Decimal(0), position.premium
            aggregate.losses += position.premium
        self._book(results, realized_pl)

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=get_underlying_symbol(symbol),
            type=OptionTradeType.EXPIRED,
            option_type=position.option_type,
            strategy=position.strategy,
            quantity=position.quantity,
            total_proceeds=total_proceeds,
            total_cost=total_cost,
            realized_pl=realized_pl,
        )

    def _assign(self, txn, symbol, queue, results, stock_positions, owned_symbols) -> Optional[OptionTrade]:
        if not queue:
            logger.warning(f"ASSIGNED {symbol} on {txn.date.date()} has no open position, skipping")
            return None

        position = queue.popleft()
        realized_pl = position.premium

        results.strategy_summary[position.strategy].premium_retained += realized_pl
        self._book(results, realized_pl)

        return OptionTrade(
            date=txn.date,
            symbol=symbol,
            underlying_symbol=get_underlying_symbol(symbol),
            type=OptionTradeType.ASSIGNED,
            option_type=position.option_type,
            strategy=position.strategy,
            quantity=position.quantity,
            total_proceeds=realized_pl,
            realized_pl=realized_pl,
        )

    @staticmethod
    def _book(results: OptionResults, realized_pl: Decimal):
        """Add a closing P&L to the totals (options are always short-term)."""
        if realized_pl > 0:
            results.total_realized_gains += realized_pl
            results.short_term_gains += realized_pl
        else:
            results.total_realized_losses += realized_pl
            results.short_term_losses += realized_pl


def match_option_transactions(
    transactions: Iterable[Transaction],
    stock_positions: Optional[Mapping[str, List[TaxLot]]] = None,
    owned_symbols: Optional[Set[str]] = None,
    covered_call_policy: str = DEFAULT_COVERED_CALL_POLICY
) -> OptionResults:
    """Convenience wrapper: run a fresh OptionStrategyEngine."""
    engine = OptionStrategyEngine(covered_call_policy)
    return engine.match(transactions, stock_positions, owned_symbols)
