"""
Gains Module - Realized Gains/Losses Report

Combines stock lot matching and option strategy results, and exports the
report as plain dicts, pandas DataFrames or a hash-sealed audit entry.
"""

from modules.gains.aggregator import GainsReport, calculate_gains_losses
from modules.gains.export import report_to_dict, seal_report, trades_to_dataframe

__all__ = ['GainsReport', 'calculate_gains_losses', 'report_to_dict', 'seal_report', 'trades_to_dataframe']
