"""
Tax Lot and Realized Trade Data Models

Defines the data structures produced by the tax-lot matcher:
- TaxLot: a specific purchase still (partially) held
- LotClosure: the part of one lot consumed by a sale
- StockTrade: a BUY or SELL record with realized P&L
- StockResults: totals, trades and remaining open lots of one matcher run

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from enum import Enum


class LotMatchingMethod(str, Enum):
    """Supported lot selection strategies."""
    FIFO = "FIFO"
    LIFO = "LIFO"
    HIFO = "HIFO"


class HoldingTerm(str, Enum):
    """Holding-period classification of a closure or trade."""
    SHORT = "SHORT"
    LONG = "LONG"
    MIXED = "MIXED"


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


ORPHAN_NOTE = "Missing buy history - assumed long term"
PARTIAL_ORPHAN_NOTE = "Missing buy history (partial) - assumed long term"


@dataclass
class TaxLot:
    """
    A batch of shares acquired at one time and price.

    `quantity` is the remaining count and is decremented in place by sells;
    `cost_per_share` already includes the purchase commission and fees.
    """

    symbol: str
    quantity: Decimal
    cost_per_share: Decimal
    acquisition_date: datetime
    original_quantity: Decimal = field(default_factory=lambda: Decimal(0))

    def __post_init__(self):
        if not self.original_quantity:
            self.original_quantity = self.quantity

    def is_exhausted(self) -> bool:
        """Check if lot has been fully sold."""
        return self.quantity <= 0


@dataclass
class LotClosure:
    """
    The portion of a lot consumed by one sale.

    Orphaned closures (shares sold without purchase history) carry no
    acquisition date, a zero cost and a note explaining the assumption.
    """

    quantity: Decimal
    cost: Decimal
    proceeds: Decimal
    realized_pl: Decimal
    term: HoldingTerm
    acquisition_date: Optional[datetime] = None
    days_held: Optional[int] = None
    note: Optional[str] = None

    @property
    def is_orphaned(self) -> bool:
        return self.acquisition_date is None


@dataclass
class StockTrade:
    """Realized stock trade record (write-once)."""

    date: datetime
    symbol: str
    type: TradeSide
    quantity: Decimal
    price: Decimal
    total_cost: Decimal
    total_proceeds: Decimal = field(default_factory=lambda: Decimal(0))
    realized_pl: Decimal = field(default_factory=lambda: Decimal(0))
    term: Optional[HoldingTerm] = None
    lots: List[LotClosure] = field(default_factory=list)
    is_wash_sale: bool = False
    wash_sale_note: Optional[str] = None

    @property
    def is_sell(self) -> bool:
        return self.type == TradeSide.SELL


def classify_trade_term(closures: List[LotClosure]) -> HoldingTerm:
    """LONG if every closure is long-term, SHORT if every one is short-term, else MIXED."""
    terms = {closure.term for closure in closures}
    if len(terms) > 1:
        return HoldingTerm.MIXED
    if terms:
        return terms.pop()
    return HoldingTerm.SHORT


@dataclass
class StockResults:
    """Output of one tax-lot matcher run."""

    method: LotMatchingMethod
    trades: List[StockTrade] = field(default_factory=list)
    open_positions: Dict[str, List[TaxLot]] = field(default_factory=dict)

    total_realized_gains: Decimal = field(default_factory=lambda: Decimal(0))
    total_realized_losses: Decimal = field(default_factory=lambda: Decimal(0))  # stored negative

    short_term_gains: Decimal = field(default_factory=lambda: Decimal(0))
    short_term_losses: Decimal = field(default_factory=lambda: Decimal(0))
    long_term_gains: Decimal = field(default_factory=lambda: Decimal(0))
    long_term_losses: Decimal = field(default_factory=lambda: Decimal(0))

    @property
    def net_pl(self) -> Decimal:
        return self.total_realized_gains + self.total_realized_losses

    @property
    def sell_trades(self) -> List[StockTrade]:
        return [t for t in self.trades if t.is_sell]

    def shares_owned(self, symbol: str) -> Decimal:
        """Total remaining shares across the open lots of a symbol."""
        return sum((lot.quantity for lot in self.open_positions.get(symbol, [])), start=Decimal(0))
