"""
Parsers Package

Turns brokerage exports into validated, immutable Transaction records.
Everything downstream consumes the typed model only.
"""

__all__ = ['transaction', 'brokerage_csv']
