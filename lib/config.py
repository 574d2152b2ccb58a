"""
Engine Configuration

Fixed domain constants for the gains engine plus the small set of
user-selectable settings (tax lot method, covered-call policy).

Settings resolve from environment variables so the same run can be
reproduced from a shell or a CI job:

    TAX_LOT_STRATEGY     FIFO | LIFO | HIFO          (default FIFO)
    COVERED_CALL_POLICY  assume_covered | strict     (default assume_covered)

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import os
from dataclasses import dataclass


# Holding period: strictly more than this many days is long-term
LONG_TERM_HOLDING_DAYS = 365

# Wash sale window (calendar days, inclusive, either side of the sale)
WASH_SALE_WINDOW_DAYS = 30

# Equity option contract size
SHARES_PER_CONTRACT = 100

# XIRR Newton-Raphson parameters
XIRR_INITIAL_GUESS = 0.1
XIRR_MAX_ITERATIONS = 100
XIRR_TOLERANCE = 1e-4
XIRR_MIN_DERIVATIVE = 1e-10
DAYS_PER_YEAR = 365.0

DEFAULT_TAX_STRATEGY = "FIFO"
DEFAULT_COVERED_CALL_POLICY = "assume_covered"


@dataclass(frozen=True)
class EngineConfig:
    """User-selectable engine settings."""

    tax_strategy: str = DEFAULT_TAX_STRATEGY
    covered_call_policy: str = DEFAULT_COVERED_CALL_POLICY

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            tax_strategy=os.getenv('TAX_LOT_STRATEGY', DEFAULT_TAX_STRATEGY).strip().upper(),
            covered_call_policy=os.getenv('COVERED_CALL_POLICY', DEFAULT_COVERED_CALL_POLICY).strip().lower(),
        )
