"""
Property-Based Tests - The Hypothesis

Uses hypothesis to verify the accounting invariants of the engine over
randomly generated transaction histories.

Invariants:
1. A sale's cost equals the sum of its lot closures; P&L = proceeds - cost
2. Shares are conserved: bought = sold from lots + still open
3. Gains + losses = net P&L, and the short/long split adds up to it
4. Recomputation with any lot method leaves the input untouched
5. Short option premium is conserved when every position expires
6. XIRR never raises and always returns a finite number

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import math
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from lib.parsers.transaction import Transaction, TransactionType
from modules.gains.aggregator import calculate_gains_losses
from modules.options.engine import match_option_transactions
from modules.options.positions import OptionStrategy
from modules.quant.returns import CashFlow, xirr
from modules.tax.engine import match_stock_transactions

BASE = datetime(2020, 1, 1)
TOLERANCE = Decimal("0.000001")

# Strategy for generating valid decimal prices
price_strategy = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("1000"),
    places=2,
    allow_nan=False,
    allow_infinity=False
)

# (is_buy, shares, price, day offset)
trade_strategy = st.tuples(
    st.booleans(),
    st.integers(min_value=1, max_value=500),
    price_strategy,
    st.integers(min_value=0, max_value=1000),
)

method_strategy = st.sampled_from(["FIFO", "LIFO", "HIFO"])


def _stock_history(trades, symbol="XYZ"):
    transactions = []
    for is_buy, shares, price, day in trades:
        quantity = Decimal(shares)
        transactions.append(Transaction(
            date=BASE + timedelta(days=day),
            symbol=symbol,
            transaction_type=TransactionType.BUY if is_buy else TransactionType.SELL,
            quantity=quantity,
            price=price,
            amount=-(quantity * price) if is_buy else quantity * price,
        ))
    return transactions


@given(trades=st.lists(trade_strategy, min_size=1, max_size=25), method=method_strategy)
@settings(max_examples=100)
def test_invariant_sale_cost_is_sum_of_closures(trades, method):
    """Invariant 1: total_cost == Σ closure cost, realized_pl == proceeds - cost."""
    results = match_stock_transactions(_stock_history(trades), method)

    for sell in results.sell_trades:
        assert sell.total_cost == sum((c.cost for c in sell.lots), Decimal(0))
        assert sell.realized_pl == sell.total_proceeds - sell.total_cost
        assert sum((c.quantity for c in sell.lots), Decimal(0)) == sell.quantity
        assert all(c.quantity > 0 for c in sell.lots)


@given(trades=st.lists(trade_strategy, min_size=1, max_size=25), method=method_strategy)
@settings(max_examples=100)
def test_invariant_shares_conserved(trades, method):
    """Invariant 2: shares bought = shares matched to lots + shares still open."""
    transactions = _stock_history(trades)
    results = match_stock_transactions(transactions, method)

    bought = sum((t.quantity for t in transactions if t.transaction_type == TransactionType.BUY), Decimal(0))
    matched = sum(
        (c.quantity for sell in results.sell_trades for c in sell.lots if not c.is_orphaned),
        Decimal(0)
    )
    still_open = sum((lot.quantity for lots in results.open_positions.values() for lot in lots), Decimal(0))

    assert bought == matched + still_open
    for lots in results.open_positions.values():
        assert all(lot.quantity > 0 for lot in lots)


@given(trades=st.lists(trade_strategy, min_size=1, max_size=25), method=method_strategy)
@settings(max_examples=100)
def test_invariant_gains_plus_losses_is_net(trades, method):
    """Invariant 3: totals are consistent with each other and with the trades."""
    results = match_stock_transactions(_stock_history(trades), method)

    assert results.total_realized_gains >= 0
    assert results.total_realized_losses <= 0
    assert results.net_pl == sum((s.realized_pl for s in results.sell_trades), Decimal(0))

    split = (
        results.short_term_gains + results.short_term_losses
        + results.long_term_gains + results.long_term_losses
    )
    assert abs(split - results.net_pl) < TOLERANCE


@given(trades=st.lists(trade_strategy, min_size=1, max_size=15))
@settings(max_examples=50)
def test_invariant_recomputation_side_effect_free(trades):
    """Invariant 4: any sequence of lot methods yields the same per-method results."""
    transactions = _stock_history(trades)
    snapshot = [t.model_dump() for t in transactions]

    first = {m: calculate_gains_losses(transactions, m).net_pl for m in ("FIFO", "LIFO", "HIFO")}
    second = {m: calculate_gains_losses(transactions, m).net_pl for m in ("HIFO", "FIFO", "LIFO")}

    assert first == second
    assert [t.model_dump() for t in transactions] == snapshot


@given(premiums=st.lists(price_strategy, min_size=1, max_size=10))
@settings(max_examples=50)
def test_invariant_expired_short_premium_retained(premiums):
    """Invariant 5: premium collected == premium retained when everything expires."""
    symbol = "XYZ240315C50"
    transactions = [
        Transaction(
            date=BASE + timedelta(days=i),
            symbol=symbol,
            transaction_type=TransactionType.OPTION_SELL_OPEN,
            quantity=Decimal(1),
            amount=premium,
            is_option=True,
        )
        for i, premium in enumerate(premiums)
    ]
    transactions += [
        Transaction(
            date=BASE + timedelta(days=100 + i),
            symbol=symbol,
            transaction_type=TransactionType.OPTION_EXPIRED,
            quantity=Decimal(1),
            is_option=True,
        )
        for i in range(len(premiums))
    ]

    results = match_option_transactions(transactions)
    covered = results.get_strategy(OptionStrategy.COVERED_CALLS)

    assert covered.premium_collected == sum(premiums, Decimal(0))
    assert covered.premium_retained == covered.premium_collected
    assert results.win_rate == 100.0
    assert results.open_positions == {}


@given(
    flows=st.lists(
        st.tuples(
            st.integers(min_value=0, max_value=3650),
            st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
        ),
        min_size=0,
        max_size=12,
    )
)
@settings(max_examples=100)
def test_invariant_xirr_total(flows):
    """Invariant 6: XIRR degrades instead of raising."""
    cash_flows = sorted(
        (CashFlow(BASE + timedelta(days=day), amount) for day, amount in flows),
        key=lambda cf: cf.date
    )
    result = xirr(cash_flows)

    assert isinstance(result, float)
    assert math.isfinite(result)


@pytest.mark.parametrize("method", ["FIFO", "LIFO", "HIFO"])
def test_orphan_sale_is_pure_gain(method):
    """Zero prior buys: realized P&L equals proceeds, term LONG."""
    [sell] = match_stock_transactions(_stock_history([(False, 7, Decimal("12.34"), 0)]), method).trades

    assert sell.realized_pl == sell.total_proceeds == Decimal("86.38")
    assert sell.term.value == "LONG"
