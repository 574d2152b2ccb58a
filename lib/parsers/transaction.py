"""
Transaction Model

Typed representation of a single normalized brokerage ledger event. This is
the only input the gains engine accepts: brokers' free-text actions are
mapped to the closed TransactionType enum by the CSV normalizer, and all
numeric coercion happens here, at the boundary, never inside matching logic.
"""

from enum import Enum
from decimal import Decimal, InvalidOperation
from datetime import date, datetime, time
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Custom exceptions
class TransactionTypeError(ValueError):
    """Raised when transaction type cannot be normalized."""
    pass


class TransactionType(str, Enum):
    """All ledger events the gains engine distinguishes."""

    # Stock
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"

    # Options
    OPTION_BUY_OPEN = "OPTION_BUY_OPEN"
    OPTION_SELL_OPEN = "OPTION_SELL_OPEN"
    OPTION_BUY_CLOSE = "OPTION_BUY_CLOSE"
    OPTION_SELL_CLOSE = "OPTION_SELL_CLOSE"
    OPTION_EXPIRED = "OPTION_EXPIRED"
    OPTION_ASSIGNED = "OPTION_ASSIGNED"

    # Interest, transfers, journal entries, ...
    OTHER = "OTHER"

    @classmethod
    def normalize(cls, value: str) -> 'TransactionType':
        """Normalize a transaction type name ("sell", "Option-Sell-Open", ...).

        Raises:
            TransactionTypeError: If the transaction type cannot be mapped.
        """
        clean_value = value.strip().upper().replace(" ", "_").replace("-", "_")

        try:
            return cls(clean_value)
        except ValueError:
            raise TransactionTypeError(f"Unknown transaction type: '{value}'") from None

    @property
    def is_option_event(self) -> bool:
        return self.value.startswith("OPTION_")


def parse_money(value: Any) -> Decimal:
    """
    Parse a broker-formatted number into Decimal.

    Accepts Decimal/int/float and strings such as "1,234.56", "$-12.50",
    "(45.00)" (accounting negative), "+3". Empty values are zero.

    Raises:
        ValueError: If the value is not a number.
    """
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    val_str = str(value).strip()
    if val_str in ('', '--', 'N/A'):
        return Decimal(0)

    negative = val_str.startswith('(') and val_str.endswith(')')
    if negative:
        val_str = val_str[1:-1]

    val_str = val_str.replace('$', '').replace(',', '').replace(' ', '')

    try:
        result = Decimal(val_str)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}") from None

    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")

    return -result if negative else result


class Transaction(BaseModel):
    """
    Normalized, immutable ledger event.

    `amount` is the signed cash effect on the account (negative for money
    out). `quantity` is always non-negative; direction is carried by
    `transaction_type`. `raw` keeps the untouched source columns for
    fallback fields such as cash balances.
    """

    model_config = ConfigDict(frozen=True)

    date: datetime
    symbol: str
    transaction_type: TransactionType

    quantity: Decimal = Decimal(0)
    price: Decimal = Decimal(0)
    commission: Decimal = Decimal(0)
    fees: Decimal = Decimal(0)
    amount: Decimal = Decimal(0)

    is_option: bool = False

    # Source metadata
    action: str = ""
    description: str = ""
    account_type: str = ""
    source: Optional[str] = None
    raw: Dict[str, str] = Field(default_factory=dict)

    @field_validator('date', mode='before')
    @classmethod
    def promote_date(cls, v):
        """Accept plain dates as midnight timestamps."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time())
        return v

    @field_validator('symbol', mode='before')
    @classmethod
    def clean_symbol(cls, v):
        return str(v).strip().upper() if v is not None else ''

    @field_validator('transaction_type', mode='before')
    @classmethod
    def parse_type(cls, v):
        if isinstance(v, str) and not isinstance(v, TransactionType):
            return TransactionType.normalize(v)
        return v

    @field_validator('quantity', 'price', 'commission', 'fees', 'amount', mode='before')
    @classmethod
    def parse_decimal(cls, v):
        """Parse broker number formats into Decimal."""
        return parse_money(v)

    @field_validator('quantity')
    @classmethod
    def non_negative_quantity(cls, v):
        if v < 0:
            raise ValueError(f'Quantity cannot be negative: {v}')
        return v

    @property
    def total_fees(self) -> Decimal:
        """Commission plus fees."""
        return self.commission + self.fees
