"""
Wash Sale Detection (Estimation)

Flags losing stock sales that have a replacement purchase of the same
symbol within 30 calendar days before or after the sale. The flag is
advisory: no loss is disallowed and no lot basis is adjusted.
"""

from datetime import timedelta
from typing import Iterable, List, Optional

from lib.config import WASH_SALE_WINDOW_DAYS
from lib.parsers.transaction import Transaction, TransactionType
from lib.utils.logging_config import setup_logger
from modules.tax.tax_events import StockTrade

logger = setup_logger(__name__)


def find_replacement_purchase(
    trade: StockTrade,
    transactions: Iterable[Transaction],
    window_days: int = WASH_SALE_WINDOW_DAYS
) -> Optional[Transaction]:
    """
    Find a BUY of the same symbol inside the wash sale window of a sale.

    Buys whose date equals the acquisition date of one of the lots consumed
    by the sale are excluded, so the opening purchase itself never counts
    as its own replacement.

    Returns:
        The first qualifying buy, or None
    """
    window = timedelta(days=window_days)
    sold_lot_dates = {
        closure.acquisition_date for closure in trade.lots
        if closure.acquisition_date is not None
    }

    for txn in transactions:
        if txn.symbol != trade.symbol or txn.transaction_type != TransactionType.BUY:
            continue
        if txn.is_option or txn.quantity <= 0 or txn.date in sold_lot_dates:
            continue
        if abs(txn.date - trade.date) <= window:
            return txn

    return None


def detect_wash_sales(
    trades: List[StockTrade],
    transactions: Iterable[Transaction],
    window_days: int = WASH_SALE_WINDOW_DAYS
) -> int:
    """
    Flag potential wash sales on losing SELL trades in place.

    Args:
        trades: Completed stock trades from one matcher run
        transactions: Transactions to search for replacement purchases
        window_days: Days on either side of the sale (inclusive)

    Returns:
        Number of trades flagged
    """
    transactions = list(transactions)
    flagged = 0

    for trade in trades:
        if not trade.is_sell or trade.realized_pl >= 0:
            continue

        replacement = find_replacement_purchase(trade, transactions, window_days)
        if replacement is None:
            continue

        trade.is_wash_sale = True
        trade.wash_sale_note = f"Potential wash sale: bought on {replacement.date.strftime('%m/%d/%Y')}"
        flagged += 1

        logger.info(
            f"Potential wash sale: {trade.symbol} sold at a loss of {trade.realized_pl:.2f} "
            f"on {trade.date.date()}, repurchased on {replacement.date.date()}"
        )

    return flagged
