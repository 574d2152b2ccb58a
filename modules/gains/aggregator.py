"""
Gains/Losses Aggregator

Runs the stock tax-lot matcher and the options strategy engine over one
transaction history and combines their realized P&L into a single report.

Stock and option totals are computed independently and then summed:

    total_realized_gains  = stock gains  + option gains
    total_realized_losses = stock losses + option losses   (<= 0)
    net_pl                = gains + losses

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from lib.config import EngineConfig
from lib.parsers.transaction import Transaction
from lib.utils.logging_config import get_perf_logger, setup_logger
from modules.options.engine import OptionStrategyEngine, collect_ownership_evidence
from modules.options.positions import OptionResults, OptionTrade
from modules.tax.engine import TaxLotMatcher
from modules.tax.tax_events import LotMatchingMethod, StockResults, StockTrade

logger = setup_logger(__name__)


@dataclass
class GainsReport:
    """Combined realized gains/losses of stock and option activity."""

    tax_strategy: LotMatchingMethod
    covered_call_policy: str
    stock_results: StockResults
    option_results: OptionResults
    total_realized_gains: Decimal = field(default_factory=lambda: Decimal(0))
    total_realized_losses: Decimal = field(default_factory=lambda: Decimal(0))
    net_pl: Decimal = field(default_factory=lambda: Decimal(0))
    all_trades: List[Union[StockTrade, OptionTrade]] = field(default_factory=list)

    @property
    def short_term_net(self) -> Decimal:
        stock, options = self.stock_results, self.option_results
        return (
            stock.short_term_gains + stock.short_term_losses
            + options.short_term_gains + options.short_term_losses
        )

    @property
    def long_term_net(self) -> Decimal:
        return self.stock_results.long_term_gains + self.stock_results.long_term_losses

    @property
    def wash_sale_trades(self) -> List[StockTrade]:
        return [t for t in self.stock_results.trades if t.is_wash_sale]


def calculate_gains_losses(
    transactions: Iterable[Transaction],
    tax_strategy: Union[str, LotMatchingMethod, None] = None,
    config: Optional[EngineConfig] = None
) -> GainsReport:
    """
    Calculate realized gains and losses for a transaction history.

    Args:
        transactions: Normalized transactions (stock and option, any order)
        tax_strategy: FIFO / LIFO / HIFO; overrides config.tax_strategy
        config: Engine settings (defaults to EngineConfig())

    Returns:
        GainsReport

    Raises:
        ValueError: If config names an unknown covered-call policy
    """
    config = config or EngineConfig()
    transactions = list(transactions)

    # Fail on configuration errors before any computation
    matcher = TaxLotMatcher(tax_strategy or config.tax_strategy)
    options_engine = OptionStrategyEngine(config.covered_call_policy)

    stock_transactions = [t for t in transactions if not t.is_option]
    option_transactions = [t for t in transactions if t.is_option]

    logger.info(
        f"Calculating gains/losses: {len(stock_transactions)} stock, "
        f"{len(option_transactions)} option transactions",
        extra={"run_context": f"strategy={matcher.method.value} policy={options_engine.policy.get_policy_name()}"}
    )

    with get_perf_logger(logger, "calculate_gains_losses", threshold_ms=1000):
        stock_results = matcher.match(stock_transactions)

        owned_symbols = collect_ownership_evidence(transactions)
        option_results = options_engine.match(
            option_transactions,
            stock_results.open_positions,
            owned_symbols,
        )

    total_gains = stock_results.total_realized_gains + option_results.total_realized_gains
    total_losses = stock_results.total_realized_losses + option_results.total_realized_losses

    report = GainsReport(
        tax_strategy=matcher.method,
        covered_call_policy=options_engine.policy.get_policy_name(),
        stock_results=stock_results,
        option_results=option_results,
        total_realized_gains=total_gains,
        total_realized_losses=total_losses,
        net_pl=total_gains + total_losses,
        all_trades=[*stock_results.trades, *option_results.trades],
    )

    logger.info(
        f"Realized gains {report.total_realized_gains:.2f}, losses {report.total_realized_losses:.2f}, "
        f"net {report.net_pl:.2f} ({len(report.wash_sale_trades)} potential wash sales)"
    )
    return report
