"""
Dispatch ledger that matches ride requests to fleet vehicles.
"""

from .dispatch_ledger import DispatchLedger, ALLOWED_TRANSITIONS

__all__ = ['DispatchLedger', 'ALLOWED_TRANSITIONS']
