"""
Fleet registry holding every vehicle, partitioned into available and assigned.
All mutations run under one lock so the two partitions never disagree.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from domain.exceptions import (
    DispatchError,
    DuplicateIdentifier,
    InvalidArgument,
    InvalidVehicle,
    NoVehicleAvailable,
    NotAssigned,
)
from domain.location import GeoPoint, distances_km
from domain.vehicle import Vehicle

logger = logging.getLogger(__name__)

VehicleRef = Union[Vehicle, str]


@dataclass(frozen=True)
class FleetSnapshot:
    """Point-in-time copy of the three vehicle collections."""
    all_vehicles: Tuple[Vehicle, ...]
    available: Tuple[Vehicle, ...]
    assigned: Tuple[Vehicle, ...]
    version: int = 0  # mutation counter at the time the copy was taken
    
    @property
    def total_count(self) -> int:
        return len(self.all_vehicles)


class FleetRegistry:
    """
    Authoritative owner of vehicle identity and availability.
    
    Available vehicles are kept in a FIFO queue ordered by the time they became
    available; assigned vehicles live in a plain list. Callers only ever receive
    copies of the stored vehicles.
    """
    
    def __init__(self):
        self._lock = threading.RLock()
        self._vehicles: Dict[str, Vehicle] = {}  # vehicle_id -> vehicle, registration order
        self._available = deque()
        self._assigned: List[Vehicle] = []
        self._plates = set()
        self._observers: List[Callable[[FleetSnapshot], None]] = []
        self._version = 0
        # Serializes deliveries so observers never go back to an older snapshot
        self._notify_lock = threading.RLock()
        self._delivered_version = 0
    
    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    
    def register(self, vehicle: Vehicle) -> Vehicle:
        """
        Add a vehicle to the fleet and make it available.
        
        Args:
            vehicle: Vehicle to register
        
        Returns:
            Copy of the registered vehicle
        
        Raises:
            InvalidVehicle: Missing vehicle, blank driver name or plate, no location
            DuplicateIdentifier: Plate or id already registered
        """
        self._validate(vehicle)
        plate = vehicle.plate.strip()
        
        with self._lock:
            if plate in self._plates:
                raise DuplicateIdentifier(f"Plate already registered: '{plate}'")
            if vehicle.id in self._vehicles:
                raise DuplicateIdentifier(f"Vehicle id already registered: '{vehicle.id}'")
            
            stored = vehicle.copy()
            stored.available = True
            self._vehicles[stored.id] = stored
            self._available.append(stored)
            self._plates.add(plate)
            result = stored.copy()
            snapshot = self._pending_snapshot_locked()
        
        logger.info("Registered vehicle %s (%s)", result.id, plate)
        self._notify(snapshot)
        return result
    
    def register_many(self, vehicles: Iterable[Vehicle]) -> Tuple[List[Vehicle], List[Tuple[Vehicle, DispatchError]]]:
        """
        Register vehicles one by one, collecting the ones that are rejected.
        
        Args:
            vehicles: Vehicles to register, in order
        
        Returns:
            (registered copies, [(rejected vehicle, error)])
        """
        registered = []
        rejected = []
        for vehicle in vehicles:
            try:
                registered.append(self.register(vehicle))
            except (InvalidVehicle, DuplicateIdentifier) as e:
                logger.warning("Skipping vehicle %s: %s", getattr(vehicle, 'plate', None), e)
                rejected.append((vehicle, e))
        return registered, rejected
    
    def acquire_fifo(self) -> Vehicle:
        """
        Take the vehicle that has been available longest.
        
        Raises:
            NoVehicleAvailable: Available pool is empty
        """
        with self._lock:
            if not self._available:
                raise NoVehicleAvailable("No taxi is currently available")
            vehicle = self._available.popleft()
            result = self._mark_assigned_locked(vehicle)
            snapshot = self._pending_snapshot_locked()
        
        logger.info("Acquired vehicle %s (fifo)", result.id)
        self._notify(snapshot)
        return result
    
    def acquire_nearest(self, point: GeoPoint) -> Vehicle:
        """
        Take the available vehicle closest to a point.
        
        Ties go to the vehicle that has been waiting in the available queue longest.
        Vehicles whose distance cannot be computed (NaN/inf coordinates) are skipped.
        
        Args:
            point: Location to measure from (usually a pickup)
        
        Raises:
            InvalidArgument: No point given
            NoVehicleAvailable: No available vehicle with a finite distance
        """
        if not isinstance(point, GeoPoint):
            raise InvalidArgument("A location is required for nearest matching")
        
        with self._lock:
            candidates = list(self._available)
            if not candidates:
                raise NoVehicleAvailable("No taxi is currently available")
            
            distances = distances_km([v.location for v in candidates], point)
            distances = np.where(np.isfinite(distances), distances, np.inf)
            # argmin returns the first minimum, i.e. the earliest queued vehicle
            best = int(np.argmin(distances))
            if not np.isfinite(distances[best]):
                raise NoVehicleAvailable(f"No available taxi has a usable distance to {point}")
            
            del self._available[best]
            result = self._mark_assigned_locked(candidates[best])
            snapshot = self._pending_snapshot_locked()
        
        logger.info("Acquired vehicle %s (nearest, %.3f km)", result.id, distances[best])
        self._notify(snapshot)
        return result
    
    def release(self, vehicle: Optional[VehicleRef]) -> Vehicle:
        """
        Return an assigned vehicle to the back of the available queue.
        
        Args:
            vehicle: Vehicle or vehicle id
        
        Raises:
            InvalidVehicle: No vehicle given
            NotAssigned: Vehicle is not currently assigned
        """
        vehicle_id = self._vehicle_id(vehicle)
        
        with self._lock:
            for index, stored in enumerate(self._assigned):
                if stored.id == vehicle_id:
                    break
            else:
                raise NotAssigned(f"Vehicle {vehicle_id} is not assigned")
            
            del self._assigned[index]
            stored.available = True
            self._available.append(stored)
            result = stored.copy()
            snapshot = self._pending_snapshot_locked()
        
        logger.info("Released vehicle %s", vehicle_id)
        self._notify(snapshot)
        return result
    
    def update_location(self, vehicle: Optional[VehicleRef], point: GeoPoint) -> Vehicle:
        """
        Replace a vehicle's location.
        
        Args:
            vehicle: Vehicle or vehicle id
            point: New location
        
        Raises:
            InvalidVehicle: Missing or unknown vehicle
            InvalidArgument: No point given
        """
        vehicle_id = self._vehicle_id(vehicle)
        if not isinstance(point, GeoPoint):
            raise InvalidArgument("A location is required")
        
        with self._lock:
            stored = self._vehicles.get(vehicle_id)
            if stored is None:
                raise InvalidVehicle(f"Unknown vehicle: '{vehicle_id}'")
            stored.location = point
            result = stored.copy()
            snapshot = self._pending_snapshot_locked()
        
        logger.debug("Moved vehicle %s to %s", vehicle_id, point)
        self._notify(snapshot)
        return result
    
    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    
    def lookup(self, vehicle_id: str) -> Optional[Vehicle]:
        """Copy of the vehicle with this id, or None."""
        with self._lock:
            stored = self._vehicles.get(vehicle_id)
            return stored.copy() if stored else None
    
    def available_vehicles(self) -> List[Vehicle]:
        with self._lock:
            return [v.copy() for v in self._available]
    
    def assigned_vehicles(self) -> List[Vehicle]:
        with self._lock:
            return [v.copy() for v in self._assigned]
    
    def all_vehicles(self) -> List[Vehicle]:
        with self._lock:
            return [v.copy() for v in self._vehicles.values()]
    
    def snapshot(self) -> FleetSnapshot:
        """All three collections copied in a single critical section."""
        with self._lock:
            return self._snapshot_locked()
    
    @property
    def available_count(self) -> int:
        with self._lock:
            return len(self._available)
    
    @property
    def assigned_count(self) -> int:
        with self._lock:
            return len(self._assigned)
    
    @property
    def total_count(self) -> int:
        with self._lock:
            return len(self._vehicles)
    
    def statistics(self) -> Dict:
        """Fleet size and utilization."""
        with self._lock:
            total = len(self._vehicles)
            assigned = len(self._assigned)
            return {
                'total_vehicles': total,
                'available_vehicles': len(self._available),
                'assigned_vehicles': assigned,
                'utilization': (assigned / total) * 100 if total > 0 else 0.0,
            }
    
    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    
    def subscribe(self, callback: Callable[[FleetSnapshot], None]) -> Callable[[], None]:
        """
        Call ``callback(snapshot)`` after every successful mutation.
        
        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._observers.append(callback)
        
        def unsubscribe():
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)
        
        return unsubscribe
    
    def _notify(self, snapshot: Optional[FleetSnapshot]):
        if snapshot is None:
            return
        with self._notify_lock:
            if snapshot.version <= self._delivered_version:
                # A newer state has already been delivered
                return
            self._delivered_version = snapshot.version
            with self._lock:
                observers = list(self._observers)
            for callback in observers:
                try:
                    callback(snapshot)
                except Exception:
                    logger.exception("Fleet observer %r failed", callback)
    
    # ------------------------------------------------------------------
    # Helpers (callers hold the lock where the name says so)
    # ------------------------------------------------------------------
    
    @staticmethod
    def _validate(vehicle: Vehicle):
        if not isinstance(vehicle, Vehicle):
            raise InvalidVehicle("A vehicle is required")
        if not isinstance(vehicle.driver_name, str) or not vehicle.driver_name.strip():
            raise InvalidVehicle("Driver name must not be blank")
        if not isinstance(vehicle.plate, str) or not vehicle.plate.strip():
            raise InvalidVehicle("Plate must not be blank")
        if not isinstance(vehicle.location, GeoPoint):
            raise InvalidVehicle(f"Vehicle location must be a GeoPoint, got {vehicle.location!r}")
    
    @staticmethod
    def _vehicle_id(vehicle: Optional[VehicleRef]) -> str:
        if isinstance(vehicle, Vehicle):
            return vehicle.id
        if isinstance(vehicle, str) and vehicle:
            return vehicle
        raise InvalidVehicle("A vehicle is required")
    
    def _mark_assigned_locked(self, vehicle: Vehicle) -> Vehicle:
        vehicle.available = False
        self._assigned.append(vehicle)
        return vehicle.copy()
    
    def _snapshot_locked(self) -> FleetSnapshot:
        return FleetSnapshot(
            all_vehicles=tuple(v.copy() for v in self._vehicles.values()),
            available=tuple(v.copy() for v in self._available),
            assigned=tuple(v.copy() for v in self._assigned),
            version=self._version,
        )
    
    def _pending_snapshot_locked(self) -> Optional[FleetSnapshot]:
        self._version += 1
        # Nothing to copy when nobody listens
        return self._snapshot_locked() if self._observers else None
