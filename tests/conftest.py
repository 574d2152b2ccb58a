"""
Shared fixtures for the gains engine tests.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from lib.parsers.transaction import Transaction, TransactionType

BASE_DATE = datetime(2024, 1, 2)


def build_transaction(transaction_type, symbol, day=0, quantity=0, price=0,
                      amount=None, commission=0, fees=0, action=''):
    """Transaction `day` days after BASE_DATE; stock amounts derive from quantity and price."""
    transaction_type = TransactionType(transaction_type)
    quantity, price = Decimal(str(quantity)), Decimal(str(price))
    commission, fees = Decimal(str(commission)), Decimal(str(fees))

    if amount is None:
        if transaction_type == TransactionType.BUY:
            amount = -(quantity * price + commission + fees)
        elif transaction_type == TransactionType.SELL:
            amount = quantity * price - commission - fees
        else:
            amount = Decimal(0)

    return Transaction(
        date=BASE_DATE + timedelta(days=day),
        symbol=symbol,
        transaction_type=transaction_type,
        quantity=quantity,
        price=price,
        commission=commission,
        fees=fees,
        amount=amount,
        is_option=transaction_type.is_option_event,
        action=action,
    )


@pytest.fixture
def make_txn():
    """Factory fixture: make_txn("BUY", "XYZ", day=0, quantity=10, price=10)."""
    return build_transaction


@pytest.fixture
def base_date():
    return BASE_DATE
