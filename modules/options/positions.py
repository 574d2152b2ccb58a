"""
Option Position and Trade Data Models

- OptionPosition: an open lot of contracts in the per-symbol FIFO queue
- OptionTrade: realized (or opening) option trade record
- StrategyAggregate: per-strategy premium and P&L totals
- OptionResults: output of one options engine run

All option P&L is short-term regardless of holding period.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from modules.options.symbols import OptionType


class OptionStrategy(str, Enum):
    """Strategy an option position is attributed to at open time."""
    COVERED_CALLS = "covered_calls"
    NAKED_CALLS = "naked_calls"
    CASH_SECURED_PUTS = "cash_secured_puts"
    LONG_CALLS = "long_calls"
    LONG_PUTS = "long_puts"

    @property
    def is_short(self) -> bool:
        return self in SHORT_STRATEGIES


SHORT_STRATEGIES = frozenset({
    OptionStrategy.COVERED_CALLS,
    OptionStrategy.NAKED_CALLS,
    OptionStrategy.CASH_SECURED_PUTS,
})


class PositionSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class OptionTradeType(str, Enum):
    SELL_OPEN = "SELL_OPEN"
    BUY_OPEN = "BUY_OPEN"
    BUY_CLOSE = "BUY_CLOSE"
    SELL_CLOSE = "SELL_CLOSE"
    EXPIRED = "EXPIRED"
    ASSIGNED = "ASSIGNED"

    @property
    def is_closing(self) -> bool:
        return self in CLOSING_TRADE_TYPES


CLOSING_TRADE_TYPES = frozenset({
    OptionTradeType.BUY_CLOSE,
    OptionTradeType.SELL_CLOSE,
    OptionTradeType.EXPIRED,
    OptionTradeType.ASSIGNED,
})


@dataclass
class OptionPosition:
    """Open contracts of one opening trade; `quantity` shrinks as closes consume it."""
    quantity: Decimal
    premium_per_contract: Decimal
    open_date: datetime
    side: PositionSide
    strategy: OptionStrategy
    option_type: OptionType

    @property
    def premium(self) -> Decimal:
        """Premium attached to the contracts still open."""
        return self.quantity * self.premium_per_contract


@dataclass
class OptionTrade:
    """Option trade record (write-once)."""
    date: datetime
    symbol: str
    underlying_symbol: str
    type: OptionTradeType
    option_type: OptionType
    strategy: OptionStrategy
    quantity: Decimal
    premium: Decimal = field(default_factory=lambda: Decimal(0))
    total_proceeds: Decimal = field(default_factory=lambda: Decimal(0))
    total_cost: Decimal = field(default_factory=lambda: Decimal(0))
    realized_pl: Decimal = field(default_factory=lambda: Decimal(0))

    @property
    def is_closing(self) -> bool:
        return self.type.is_closing


@dataclass
class StrategyAggregate:
    """
    Running totals for one strategy.

    Short strategies track premium collected/retained/lost; long strategies
    track premium paid and gains/losses. Lost premium and losses are kept
    as positive magnitudes.
    """
    strategy: OptionStrategy
    premium_collected: Decimal = field(default_factory=lambda: Decimal(0))
    premium_retained: Decimal = field(default_factory=lambda: Decimal(0))
    premium_lost: Decimal = field(default_factory=lambda: Decimal(0))
    premium_paid: Decimal = field(default_factory=lambda: Decimal(0))
    gains: Decimal = field(default_factory=lambda: Decimal(0))
    losses: Decimal = field(default_factory=lambda: Decimal(0))
    trades_count: int = 0
    trades: List[OptionTrade] = field(default_factory=list)

    @property
    def net_pl(self) -> Decimal:
        if self.strategy.is_short:
            return self.premium_retained - self.premium_lost
        return self.gains - self.losses


def empty_strategy_summary() -> Dict[OptionStrategy, StrategyAggregate]:
    return {strategy: StrategyAggregate(strategy=strategy) for strategy in OptionStrategy}


@dataclass
class OptionResults:
    """Output of one options engine run."""
    trades: List[OptionTrade] = field(default_factory=list)
    open_positions: Dict[str, List[OptionPosition]] = field(default_factory=dict)
    strategy_summary: Dict[OptionStrategy, StrategyAggregate] = field(default_factory=empty_strategy_summary)
    win_rate: float = 0.0

    total_realized_gains: Decimal = field(default_factory=lambda: Decimal(0))
    total_realized_losses: Decimal = field(default_factory=lambda: Decimal(0))  # stored negative

    # Options are always taxed short-term
    short_term_gains: Decimal = field(default_factory=lambda: Decimal(0))
    short_term_losses: Decimal = field(default_factory=lambda: Decimal(0))
    long_term_gains: Decimal = field(default_factory=lambda: Decimal(0))
    long_term_losses: Decimal = field(default_factory=lambda: Decimal(0))

    @property
    def net_pl(self) -> Decimal:
        return self.total_realized_gains + self.total_realized_losses

    @property
    def closed_trades(self) -> List[OptionTrade]:
        return [t for t in self.trades if t.is_closing]

    def get_strategy(self, strategy: OptionStrategy) -> Optional[StrategyAggregate]:
        return self.strategy_summary.get(strategy)
