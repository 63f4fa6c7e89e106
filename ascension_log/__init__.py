"""
Ascension log parser.

Reconstructs turns, turn intervals and summaries from game session logs.
"""

__version__ = "0.1.0"
