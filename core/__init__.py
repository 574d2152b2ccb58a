"""
Core Kernel Module

Foundational utilities shared by the engine modules.

Components:
- hashing: SHA256 fingerprints for reproducible gains reports

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

__all__ = ['hashing']
