"""
Modules Package

Business logic layer of the gains engine.

Modules:
- tax: Stock tax-lot matching and wash sale detection
- options: Option strategy attribution and premium accounting
- gains: Combined realized gains/losses report and exports
- quant: Money-weighted return (XIRR)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['tax', 'options', 'gains', 'quant']
