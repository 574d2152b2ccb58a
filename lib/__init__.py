"""
Library Package

Boundary layer shared by the engine modules:
- parsers: typed transaction model and brokerage CSV normalization
- utils: logging configuration
- config: engine constants and environment-driven settings

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['parsers', 'utils', 'config']
