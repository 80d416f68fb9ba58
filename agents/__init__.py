"""
Simulation agents that drive the dispatch engine like real callers would.
"""

from .taxi import TaxiAgent
from .passenger import PassengerAgent

__all__ = ['TaxiAgent', 'PassengerAgent']
