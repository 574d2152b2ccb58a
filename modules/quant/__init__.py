"""
Quant Module - Return Metrics

Money-weighted (XIRR) and simple annualized returns over a transaction history.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from modules.quant.returns import CashFlow, build_cash_flows, calculate_xirr, simple_annualized_return, xirr

__all__ = ['CashFlow', 'build_cash_flows', 'calculate_xirr', 'simple_annualized_return', 'xirr']
