"""
Payment Ledger

An append-only ledger of two-party value transfers with participant-filtered
history queries.
"""

__version__ = "1.0.0"
