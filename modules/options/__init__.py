"""
Options Module - Strategy Attribution and Premium Accounting

Features:
- Compact option symbol parsing (underlying, CALL/PUT, expiry, strike)
- FIFO matching of option closes against opening positions
- Strategy attribution (covered/naked calls, cash-secured puts, long calls/puts)
- Configurable covered-call classification policy

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from modules.options.engine import (
    OptionStrategyEngine,
    collect_ownership_evidence,
    match_option_transactions,
)
from modules.options.policies import get_policy, list_available_policies
from modules.options.positions import (
    OptionPosition,
    OptionResults,
    OptionStrategy,
    OptionTrade,
    OptionTradeType,
    StrategyAggregate,
)
from modules.options.symbols import OptionType, get_option_type, get_underlying_symbol, parse_option_symbol

__all__ = [
    'OptionStrategyEngine',
    'collect_ownership_evidence',
    'match_option_transactions',
    'get_policy',
    'list_available_policies',
    'OptionPosition',
    'OptionResults',
    'OptionStrategy',
    'OptionTrade',
    'OptionTradeType',
    'StrategyAggregate',
    'OptionType',
    'get_option_type',
    'get_underlying_symbol',
    'parse_option_symbol',
]
