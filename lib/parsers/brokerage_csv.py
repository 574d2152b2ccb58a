"""Brokerage CSV normalizer (Fidelity and Schwab transaction history exports)."""

import re
from datetime import datetime
from decimal import Decimal
from io import StringIO
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from lib.parsers.transaction import Transaction, TransactionType, parse_money
from lib.utils.logging_config import setup_logger

logger = setup_logger(__name__)

FIDELITY = 'fidelity'
SCHWAB = 'schwab'

# Schwab spells option contracts out: "AAPL 01/17/2025 150.00 C"
_SCHWAB_OPTION_PATTERN = re.compile(r'^([A-Z.]+)\s+(\d{2})/(\d{2})/(\d{4})\s+([\d.]+)\s+([CP])$')


class CSVFormatError(ValueError):
    """Raised when content is empty or has no recognizable transaction header."""
    pass


def detect_source(headers: List[str]) -> str:
    """
    Detect the broker from CSV headers.

    Fidelity: "Run Date" and "Settlement Date"; Schwab: "Exchange Rate" or
    "Exchange Currency", or a "Fees & Comm" column without "Run Date".
    Anything else is read as Fidelity.
    """
    header_str = ','.join(str(h) for h in headers).lower()

    if 'run date' in header_str and 'settlement date' in header_str:
        return FIDELITY

    if 'exchange rate' in header_str or 'exchange currency' in header_str:
        return SCHWAB

    if 'fees & comm' in header_str and 'run date' not in header_str:
        return SCHWAB

    return FIDELITY


def classify_fidelity_action(action: str, is_option: bool) -> TransactionType:
    """
    Map a Fidelity action text ("YOU SOLD OPENING TRANSACTION CALL ...") to a type.

    Order matters: dividend and stock checks run before the option
    opening/closing checks.
    """
    action = action.upper()

    if 'YOU BOUGHT' in action and not is_option:
        return TransactionType.BUY
    if 'YOU SOLD' in action and not is_option and 'OPENING' not in action and 'CLOSING' not in action:
        return TransactionType.SELL
    if 'DIVIDEND' in action:
        return TransactionType.DIVIDEND
    if 'YOU SOLD' in action and 'OPENING' in action:
        return TransactionType.OPTION_SELL_OPEN
    if 'YOU BOUGHT' in action and 'OPENING' in action:
        return TransactionType.OPTION_BUY_OPEN
    if 'YOU SOLD' in action and 'CLOSING' in action:
        return TransactionType.OPTION_SELL_CLOSE
    if 'YOU BOUGHT' in action and 'CLOSING' in action:
        return TransactionType.OPTION_BUY_CLOSE
    if 'ASSIGNED' in action:
        return TransactionType.OPTION_ASSIGNED
    if 'EXPIRED' in action:
        return TransactionType.OPTION_EXPIRED

    return TransactionType.OTHER


def classify_schwab_action(action: str, is_option: bool) -> TransactionType:
    """Map a Schwab action ("Sell to Open", "Buy", "Qualified Dividend", ...) to a type."""
    action = action.upper()

    if 'SELL TO OPEN' in action:
        return TransactionType.OPTION_SELL_OPEN
    if 'BUY TO OPEN' in action:
        return TransactionType.OPTION_BUY_OPEN
    if 'BUY TO CLOSE' in action:
        return TransactionType.OPTION_BUY_CLOSE
    if 'SELL TO CLOSE' in action:
        return TransactionType.OPTION_SELL_CLOSE
    if 'EXPIRED' in action:
        return TransactionType.OPTION_EXPIRED
    if 'ASSIGNED' in action:
        return TransactionType.OPTION_ASSIGNED
    if 'DIVIDEND' in action:
        return TransactionType.DIVIDEND
    if 'BUY' in action and not is_option:
        return TransactionType.BUY
    if 'SELL' in action and not is_option:
        return TransactionType.SELL

    return TransactionType.OTHER


def compact_schwab_option_symbol(symbol: str) -> Optional[str]:
    """
    "AAPL 01/17/2025 150.00 C" -> "AAPL250117C150".

    Returns None if the symbol is not a spelled-out option contract.
    """
    match = _SCHWAB_OPTION_PATTERN.match(symbol.strip().upper())
    if not match:
        return None

    ticker, month, day, year, strike, type_char = match.groups()
    if '.' in strike:
        strike = strike.rstrip('0').rstrip('.')

    return f"{ticker}{year[2:]}{month}{day}{type_char}{strike}"


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse an export date.

    MM/DD/YYYY first (both brokers), ISO as fallback. Schwab's
    "01/15/2024 as of 01/12/2024" uses the first (posting) date.
    """
    if value is None or pd.isna(value):
        return None

    val_str = str(value).strip()
    if not val_str:
        return None

    if ' as of ' in val_str.lower():
        val_str = val_str.lower().split(' as of ')[0].strip()

    date_formats = [
        '%m/%d/%Y',
        '%m/%d/%y',
        '%Y-%m-%d',
        '%Y-%m-%dT%H:%M:%S',
        '%Y-%m-%d %H:%M:%S',
    ]

    for fmt in date_formats:
        try:
            return datetime.strptime(val_str, fmt)
        except ValueError:
            continue

    return None


class BrokerageCSVParser:
    """
    Normalize a broker transaction-history CSV into Transaction objects.

    Handles:
    - Preamble lines before the header row (Fidelity)
    - Disclaimer footers and ragged lines (skipped)
    - Broker-specific action texts and option symbols
    - Money formats: $, thousands separators, (accounting negatives)

    Rows that cannot be read are skipped and counted per category; only a
    missing or unrecognizable header fails the whole file.
    """

    FIDELITY_COLUMNS = {
        'date': 'Run Date',
        'action': 'Action',
        'symbol': 'Symbol',
        'description': 'Description',
        'account_type': 'Type',
        'quantity': 'Quantity',
        'price': 'Price ($)',
        'commission': 'Commission ($)',
        'fees': 'Fees ($)',
        'amount': 'Amount ($)',
    }

    SCHWAB_COLUMNS = {
        'date': 'Date',
        'action': 'Action',
        'symbol': 'Symbol',
        'description': 'Description',
        'quantity': 'Quantity',
        'price': 'Price',
        'commission': 'Fees & Comm',
        'amount': 'Amount',
    }

    def __init__(self):
        self.source: Optional[str] = None
        self.errors: List[str] = []
        self.error_categories: Dict[str, int] = {}

    @staticmethod
    def find_header_row(lines: List[str]) -> int:
        """
        Index of the first line that looks like a transaction header.

        Raises:
            CSVFormatError: If no line names a date, action and symbol column
        """
        for idx, line in enumerate(lines):
            lowered = line.lower()
            if 'symbol' in lowered and 'action' in lowered and 'date' in lowered:
                return idx

        raise CSVFormatError("No transaction header row found (expected Date, Action and Symbol columns)")

    def _record_error(self, category: str, message: str):
        self.errors.append(message)
        self.error_categories[category] = self.error_categories.get(category, 0) + 1
        logger.warning(message)

    def _money(self, value: Any, column: str, row_label: str) -> Decimal:
        try:
            return parse_money(value)
        except ValueError:
            self._record_error('invalid_number', f"{row_label}: could not parse {column} '{value}', using 0")
            return Decimal(0)

    def parse(self, content: str) -> List[Transaction]:
        """
        Parse CSV content into validated Transaction objects.

        Args:
            content: Raw CSV text

        Returns:
            Transactions in file order

        Raises:
            CSVFormatError: If content is empty or no header row is found
        """
        self.errors = []
        self.error_categories = {}

        if not content or not content.strip():
            raise CSVFormatError("CSV content is empty")

        lines = content.lstrip('\ufeff').splitlines()
        header_idx = self.find_header_row(lines)
        if header_idx:
            logger.debug(f"Skipping {header_idx} preamble lines")

        df = pd.read_csv(
            StringIO('\n'.join(lines[header_idx:])),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            on_bad_lines='skip'
        )
        df.columns = df.columns.str.strip().str.strip('"')

        self.source = detect_source(list(df.columns))
        columns = self.FIDELITY_COLUMNS if self.source == FIDELITY else self.SCHWAB_COLUMNS

        logger.info(f"Read {len(df)} rows from {self.source} export, columns: {list(df.columns)}")

        transactions = []
        for idx, row in df.iterrows():
            txn = self._parse_row(row, columns, f"Row {idx}")
            if txn is not None:
                transactions.append(txn)

        skipped = len(df) - len(transactions)
        logger.info(f"Parsed {len(transactions)} transactions, skipped {skipped} rows")
        if self.error_categories:
            logger.info(f"Row issues by category: {self.error_categories}")

        return transactions

    def _parse_row(self, row: pd.Series, columns: Dict[str, str], row_label: str) -> Optional[Transaction]:
        def get_val(key: str) -> str:
            column = columns.get(key)
            if column is None:
                return ''
            val = row.get(column, '')
            if val is None or pd.isna(val):
                return ''
            return str(val).strip()

        raw_symbol = get_val('symbol')
        if not raw_symbol:
            # Cash movements, disclaimers, footers
            return None

        trans_date = parse_date(get_val('date'))
        if trans_date is None:
            self._record_error('invalid_date', f"{row_label}: invalid date '{get_val('date')}' ({raw_symbol})")
            return None

        action = get_val('action').upper()

        if self.source == FIDELITY:
            is_option = raw_symbol.startswith('-') or 'CALL' in action or 'PUT' in action
            symbol = raw_symbol.lstrip('-')
            transaction_type = classify_fidelity_action(action, is_option)
        else:
            compact = compact_schwab_option_symbol(raw_symbol)
            is_option = compact is not None or 'CALL' in raw_symbol.upper() or 'PUT' in raw_symbol.upper()
            symbol = compact or raw_symbol
            transaction_type = classify_schwab_action(action, is_option)

        if transaction_type.is_option_event:
            is_option = True

        try:
            return Transaction(
                date=trans_date,
                symbol=symbol,
                transaction_type=transaction_type,
                quantity=abs(self._money(get_val('quantity'), 'quantity', row_label)),
                price=self._money(get_val('price'), 'price', row_label),
                commission=self._money(get_val('commission'), 'commission', row_label),
                fees=self._money(get_val('fees'), 'fees', row_label),
                amount=self._money(get_val('amount'), 'amount', row_label),
                is_option=is_option,
                action=action,
                description=get_val('description'),
                account_type=get_val('account_type'),
                source=self.source,
                raw={str(k): ('' if pd.isna(v) else str(v)) for k, v in row.items()},
            )
        except ValidationError as e:
            self._record_error('validation_error', f"{row_label}: {e.error_count()} validation errors ({symbol})")
            return None


def parse_brokerage_csv(content: str) -> List[Transaction]:
    """Convenience wrapper around BrokerageCSVParser().parse()."""
    return BrokerageCSVParser().parse(content)
