"""Confluence Signal Engine.

Scores weighted indicator confluence for a fixed symbol universe, emits
BUY/SELL signals with entry, stop and target levels, and tracks each
signal until it resolves as a win, loss or breakeven.
"""

__version__ = "0.1.0"
