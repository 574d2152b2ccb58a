"""
Tax Module - Stock Tax-Lot Matching

Deterministic replay of stock transactions into realized trades.

Features:
- FIFO / LIFO / HIFO lot selection
- Orphaned-lot fallback for sales without purchase history
- Short/long-term holding period classification
- Advisory wash sale detection

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from modules.tax.engine import TaxLotMatcher, get_strategy, match_stock_transactions
from modules.tax.tax_events import (
    HoldingTerm,
    LotClosure,
    LotMatchingMethod,
    StockResults,
    StockTrade,
    TaxLot,
    TradeSide,
)
from modules.tax.wash_sale import detect_wash_sales

__all__ = [
    'TaxLotMatcher',
    'get_strategy',
    'match_stock_transactions',
    'detect_wash_sales',
    'HoldingTerm',
    'LotClosure',
    'LotMatchingMethod',
    'StockResults',
    'StockTrade',
    'TaxLot',
    'TradeSide',
]
