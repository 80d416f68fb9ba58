"""
Reporting frames built from fleet and ride snapshots.
"""

from typing import Dict, Iterable, List

import pandas as pd

from dispatch.dispatch_ledger import DispatchLedger
from domain.ride import RideRequest, RideStatus
from domain.vehicle import Vehicle
from fleet.fleet_registry import FleetRegistry, FleetSnapshot

VEHICLE_COLUMNS = ['id', 'driver_name', 'plate', 'model', 'latitude', 'longitude',
                   'location', 'available']
RIDE_COLUMNS = ['id', 'customer_name', 'status', 'vehicle_id', 'pickup_latitude',
                'pickup_longitude', 'dropoff_latitude', 'dropoff_longitude', 'distance_km',
                'requested_at', 'assigned_at', 'completed_at', 'wait_seconds']


def vehicles_frame(vehicles: Iterable[Vehicle]) -> pd.DataFrame:
    """One row per vehicle."""
    rows = [{
        'id': v.id,
        'driver_name': v.driver_name,
        'plate': v.plate,
        'model': v.model,
        'latitude': v.location.latitude,
        'longitude': v.location.longitude,
        'location': v.location.label,
        'available': v.available,
    } for v in vehicles]
    return pd.DataFrame(rows, columns=VEHICLE_COLUMNS)


def rides_frame(rides: Iterable[RideRequest]) -> pd.DataFrame:
    """One row per ride, status as its name and wait time in seconds."""
    rows = [{
        'id': r.id,
        'customer_name': r.customer_name,
        'status': str(r.status),
        'vehicle_id': r.vehicle_id,
        'pickup_latitude': r.pickup.latitude,
        'pickup_longitude': r.pickup.longitude,
        'dropoff_latitude': r.dropoff.latitude,
        'dropoff_longitude': r.dropoff.longitude,
        'distance_km': r.distance_km,
        'requested_at': r.requested_at,
        'assigned_at': r.assigned_at,
        'completed_at': r.completed_at,
        'wait_seconds': r.wait_seconds,
    } for r in rides]
    return pd.DataFrame(rows, columns=RIDE_COLUMNS)


def status_summary(rides: Iterable[RideRequest]) -> Dict[str, int]:
    """Ride count for every status, zeros included."""
    summary = {str(status): 0 for status in RideStatus}
    for ride in rides:
        summary[str(ride.status)] += 1
    return summary


class FleetMonitor:
    """
    Records a row of fleet and ride counts every time the engine changes.
    """
    
    def __init__(self, fleet: FleetRegistry, ledger: DispatchLedger):
        self.fleet = fleet
        self.ledger = ledger
        self.history: List[Dict] = []
        self._last_fleet = fleet.snapshot()
        self._last_rides = ledger.all_rides()
        self._unsubscribers = [
            fleet.subscribe(self._on_fleet_change),
            ledger.subscribe(self._on_rides_change),
        ]
    
    def _on_fleet_change(self, snapshot: FleetSnapshot):
        self._last_fleet = snapshot
        self._record('fleet')
    
    def _on_rides_change(self, rides: List[RideRequest]):
        self._last_rides = rides
        self._record('rides')
    
    def _record(self, source: str):
        row = {
            'source': source,
            'total_vehicles': self._last_fleet.total_count,
            'available_vehicles': len(self._last_fleet.available),
            'assigned_vehicles': len(self._last_fleet.assigned),
            'total_rides': len(self._last_rides),
        }
        row.update(status_summary(self._last_rides))
        self.history.append(row)
    
    def history_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.history)
    
    def close(self):
        """Stop listening to the engine."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
