"""
Money-Weighted Returns (XIRR)

XIRR is the annualized rate r at which the net present value of all dated
cash flows is zero:

    NPV(r) = Σ a_i / (1 + r)^(y_i),   y_i = (date_i - date_0) in days / 365

Solved with Newton-Raphson (scipy). The solver never raises: missing data,
a vanishing derivative or a non-finite result degrade to a logged warning.

Cash-flow policy: each trade is a flow (money into positions negative,
money out positive), plus the current portfolio value as a final inflow.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import math
import warnings
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Union

import numpy as np
from scipy.optimize import newton

from lib.config import (
    DAYS_PER_YEAR,
    XIRR_INITIAL_GUESS,
    XIRR_MAX_ITERATIONS,
    XIRR_MIN_DERIVATIVE,
    XIRR_TOLERANCE,
)
from lib.parsers.transaction import Transaction, TransactionType
from lib.utils.logging_config import get_perf_logger, setup_logger

logger = setup_logger(__name__)

SECONDS_PER_DAY = 86400.0

OUTFLOW_TYPES = frozenset({TransactionType.BUY, TransactionType.OPTION_BUY_OPEN})
INFLOW_TYPES = frozenset({
    TransactionType.SELL,
    TransactionType.OPTION_SELL_OPEN,
    TransactionType.DIVIDEND,
})


@dataclass(frozen=True)
class CashFlow:
    """Dated cash flow: negative = invested, positive = returned."""
    date: datetime
    amount: float


def xirr(cash_flows: List[CashFlow], guess: float = XIRR_INITIAL_GUESS) -> float:
    """
    Calculate XIRR using Newton-Raphson.

    Args:
        cash_flows: Dated flows; the first one is the time origin
        guess: Initial rate guess (0.1 = 10%)

    Returns:
        Annualized return in percent (e.g. 10.0 for 10%); 0.0 with fewer
        than two flows or when no finite rate is found
    """
    if len(cash_flows) < 2:
        return 0.0

    base_date = cash_flows[0].date
    amounts = np.array([cf.amount for cf in cash_flows], dtype=float)
    years = np.array([
        (cf.date - base_date).total_seconds() / SECONDS_PER_DAY / DAYS_PER_YEAR
        for cf in cash_flows
    ])

    def npv(rate: float) -> float:
        with np.errstate(all='ignore'):
            return float(np.sum(amounts / ((1.0 + rate) ** years)))

    def npv_derivative(rate: float) -> float:
        with np.errstate(all='ignore'):
            derivative = float(np.sum(-years * amounts / ((1.0 + rate) ** (years + 1))))
        # Below the floor Newton stops at the current rate
        if abs(derivative) < XIRR_MIN_DERIVATIVE:
            return 0.0
        return derivative

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always', RuntimeWarning)
        try:
            rate = newton(
                func=npv,
                x0=guess,
                fprime=npv_derivative,
                tol=XIRR_TOLERANCE,
                maxiter=XIRR_MAX_ITERATIONS,
                disp=False
            )
        except (RuntimeError, OverflowError, ZeroDivisionError) as e:
            logger.warning(f"XIRR calculation failed: {e}")
            return 0.0

    for warning in caught:
        logger.warning(f"XIRR solver: {warning.message}")

    result = float(rate) * 100
    if not math.isfinite(result):
        logger.warning(f"XIRR did not produce a finite rate ({rate}), returning 0")
        return 0.0

    return result


def build_cash_flows(
    transactions: Iterable[Transaction],
    current_value: Union[Decimal, float, int] = 0,
    as_of: Optional[datetime] = None
) -> List[CashFlow]:
    """
    Convert transactions to XIRR cash flows.

    - BUY, OPTION_BUY_OPEN: -|amount|
    - SELL, OPTION_SELL_OPEN, DIVIDEND: +|amount|
    - current_value > 0: final inflow dated `as_of` (default: now, in the
      transactions' timezone)

    Other transaction types carry no flow. Result is sorted by date (stable).
    """
    flows: List[CashFlow] = []

    for txn in transactions:
        if txn.transaction_type in OUTFLOW_TYPES:
            flows.append(CashFlow(txn.date, -float(abs(txn.amount))))
        elif txn.transaction_type in INFLOW_TYPES:
            flows.append(CashFlow(txn.date, float(abs(txn.amount))))

    if current_value and current_value > 0:
        if as_of is None:
            # Same timezone as the transaction dates
            as_of = datetime.now(tz=flows[0].date.tzinfo if flows else None)
        flows.append(CashFlow(as_of, float(current_value)))

    flows.sort(key=lambda cf: cf.date)
    return flows


def calculate_xirr(
    transactions: Iterable[Transaction],
    current_value: Union[Decimal, float, int] = 0,
    as_of: Optional[datetime] = None
) -> float:
    """XIRR (percent) of a transaction history plus current portfolio value."""
    with get_perf_logger(logger, "calculate_xirr", threshold_ms=500):
        flows = build_cash_flows(transactions, current_value, as_of)
        result = xirr(flows)

    logger.debug(f"XIRR over {len(flows)} cash flows: {result:.2f}%")
    return result


def simple_annualized_return(
    total_invested: Union[Decimal, float],
    current_value: Union[Decimal, float],
    start: datetime,
    end: datetime
) -> float:
    """
    Compound annual growth rate in percent.

    ((1 + total_return) ** (1 / years) - 1) * 100, 0 when nothing was
    invested or the period is empty.
    """
    invested = float(total_invested)
    years = (end - start).total_seconds() / SECONDS_PER_DAY / DAYS_PER_YEAR

    if invested <= 0 or years <= 0:
        return 0.0

    total_return = (float(current_value) - invested) / invested
    if total_return <= -1:
        return -100.0

    try:
        return ((1 + total_return) ** (1 / years) - 1) * 100
    except OverflowError:
        logger.warning(f"Annualized return overflows for {years:.4f} years, returning 0")
        return 0.0
