"""
Fleet bookkeeping: which vehicles exist and which of them are free.
"""

from .fleet_registry import FleetRegistry, FleetSnapshot

__all__ = ['FleetRegistry', 'FleetSnapshot']
