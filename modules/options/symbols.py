"""
Option Symbol Parsing

Compact broker option symbols encode TICKER + YYMMDD expiry + C/P + strike,
e.g. BMNR260109C31.5 (Fidelity prefixes a dash: -BMNR260109C31.5).

Parsing never raises: an unparseable symbol falls back to a character
heuristic for the option type and to the symbol itself for the underlying.
"""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

_UNDERLYING_PATTERN = re.compile(r'^([A-Z]+)')
_TYPE_PATTERN = re.compile(r'\d{6}([CP])')
_CONTRACT_PATTERN = re.compile(r'^([A-Z]+)(\d{6})([CP])([\d.]+)$')


class OptionType(str, Enum):
    CALL = "CALL"
    PUT = "PUT"


@dataclass(frozen=True)
class OptionContract:
    """Fully decoded option symbol."""
    ticker: str
    expiry: date
    option_type: OptionType
    strike: Decimal


def clean_option_symbol(symbol: Optional[str]) -> str:
    """Strip whitespace and dashes."""
    if not symbol:
        return ''
    return symbol.strip().replace('-', '')


def get_underlying_symbol(option_symbol: Optional[str]) -> str:
    """
    Extract the underlying ticker (leading alphabetic run).

    BMNR260109C31.5 -> BMNR
    """
    clean_symbol = clean_option_symbol(option_symbol)
    if not clean_symbol:
        return ''

    match = _UNDERLYING_PATTERN.match(clean_symbol.upper())
    return match.group(1) if match else clean_symbol


def get_option_type(option_symbol: Optional[str]) -> OptionType:
    """
    Determine CALL or PUT from the 6-digit-date + C/P marker.

    Falls back to a plain character check when the pattern is absent.
    """
    clean_symbol = clean_option_symbol(option_symbol).upper()

    match = _TYPE_PATTERN.search(clean_symbol)
    if match:
        return OptionType.CALL if match.group(1) == 'C' else OptionType.PUT

    return OptionType.CALL if 'C' in clean_symbol else OptionType.PUT


def parse_option_symbol(option_symbol: Optional[str]) -> Optional[OptionContract]:
    """
    Decode ticker, expiry, type and strike.

    Returns:
        OptionContract, or None if the symbol is not in compact form
    """
    clean_symbol = clean_option_symbol(option_symbol).upper()
    match = _CONTRACT_PATTERN.match(clean_symbol)
    if not match:
        return None

    ticker, date_str, type_char, strike_str = match.groups()

    try:
        expiry = date(2000 + int(date_str[0:2]), int(date_str[2:4]), int(date_str[4:6]))
        strike = Decimal(strike_str)
    except (ValueError, InvalidOperation):
        return None

    return OptionContract(
        ticker=ticker,
        expiry=expiry,
        option_type=OptionType.CALL if type_char == 'C' else OptionType.PUT,
        strike=strike,
    )
