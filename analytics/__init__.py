"""
Reporting frames and monitors built on engine snapshots.
"""

from .data_collector import FleetMonitor, rides_frame, status_summary, vehicles_frame

__all__ = ['FleetMonitor', 'rides_frame', 'status_summary', 'vehicles_frame']
