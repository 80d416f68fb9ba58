"""
Dispatch ledger: creates rides, assigns vehicles through the fleet registry and
drives every ride through its state machine.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from domain.exceptions import InvalidArgument, InvalidTransition, InvalidVehicle, NotAssigned
from domain.location import GeoPoint
from domain.ride import RideRequest, RideStatus
from fleet.fleet_registry import FleetRegistry

logger = logging.getLogger(__name__)

RideRef = Union[RideRequest, str]

# Edges callers may request. REQUESTED -> ASSIGNED only happens inside request_ride.
ALLOWED_TRANSITIONS = {
    RideStatus.ASSIGNED: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED, RideStatus.CANCELLED},
    RideStatus.REQUESTED: {RideStatus.CANCELLED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

STRATEGY_NEAREST = "nearest"
STRATEGY_FIFO = "fifo"


class DispatchLedger:
    """
    Owner of all rides, partitioned by status.
    
    The ledger never holds its own lock while calling into the fleet registry:
    vehicles are acquired before the ride is stored and released after the
    status change has been committed.
    """
    
    def __init__(self, fleet: FleetRegistry, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize dispatch ledger.
        
        Args:
            fleet: Registry vehicles are acquired from and released to
            clock: Callable returning the current time (defaults to datetime.now)
        """
        if fleet is None:
            raise InvalidArgument("A fleet registry is required")
        self.fleet = fleet
        self.clock = clock or datetime.now
        self._lock = threading.RLock()
        self._rides: Dict[str, RideRequest] = {}  # ride_id -> ride, creation order
        self._by_status: Dict[RideStatus, Dict[str, RideRequest]] = {
            status: {} for status in RideStatus
        }
        self._assignment_history = []
        self._observers: List[Callable[[List[RideRequest]], None]] = []
        self._version = 0
        self._notify_lock = threading.RLock()
        self._delivered_version = 0
    
    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    
    def request_ride(self, customer_name: str, pickup: GeoPoint, dropoff: GeoPoint,
                     use_nearest: bool = False) -> RideRequest:
        """
        Create a ride and dispatch a vehicle to it.
        
        The ride is only stored once a vehicle was found; when the fleet has
        nothing to offer the whole request fails.
        
        Args:
            customer_name: Who asked for the ride
            pickup: Where the customer waits
            dropoff: Where the customer goes
            use_nearest: Pick the closest vehicle instead of the longest idle one
        
        Returns:
            Copy of the stored, ASSIGNED ride
        
        Raises:
            InvalidArgument: Blank customer name or missing endpoint
            NoVehicleAvailable: Fleet has no vehicle to assign
        """
        if not isinstance(customer_name, str) or not customer_name.strip():
            raise InvalidArgument("Customer name must not be blank")
        if not isinstance(pickup, GeoPoint) or not isinstance(dropoff, GeoPoint):
            raise InvalidArgument("Pickup and dropoff locations are required")
        
        ride = RideRequest(customer_name=customer_name.strip(), pickup=pickup,
                           dropoff=dropoff, requested_at=self.clock())
        
        # Registry lock only; NoVehicleAvailable propagates before anything is stored
        if use_nearest:
            vehicle = self.fleet.acquire_nearest(pickup)
            strategy = STRATEGY_NEAREST
        else:
            vehicle = self.fleet.acquire_fifo()
            strategy = STRATEGY_FIFO
        
        try:
            assigned_at = self.clock()
            with self._lock:
                ride.vehicle_id = vehicle.id
                ride.assigned_at = assigned_at
                ride.status = RideStatus.ASSIGNED
                self._rides[ride.id] = ride
                self._by_status[ride.status][ride.id] = ride
                self._assignment_history.append({
                    'ride_id': ride.id,
                    'vehicle_id': vehicle.id,
                    'strategy': strategy,
                })
                result = ride.copy()
                snapshot = self._pending_snapshot_locked()
        except Exception:
            # Nothing references the vehicle yet, hand it back before failing
            logger.warning("Dispatch of ride %s failed, returning vehicle %s", ride.id, vehicle.id)
            self._release_quietly(vehicle.id, ride.id)
            raise
        
        logger.info("Dispatched vehicle %s to ride %s for %s (%s)",
                    vehicle.id, ride.id, ride.customer_name, strategy)
        self._notify(snapshot)
        return result
    
    def transition(self, ride: Optional[RideRef], new_status: Union[RideStatus, str]) -> RideRequest:
        """
        Move a stored ride to a new status.
        
        Completing a ride, or cancelling one that had a vehicle, hands the vehicle
        back to the fleet. That release is best effort: if the fleet refuses it the
        failure is logged and the status change stands.
        
        Args:
            ride: Ride (or ride id) stored in this ledger
            new_status: Target status, as RideStatus or its name
        
        Returns:
            Copy of the updated ride
        
        Raises:
            InvalidArgument: Missing or unknown ride, unknown status
            InvalidTransition: Edge not allowed from the current status
        """
        ride_id = self._ride_id(ride)
        target = self._parse_status(new_status)
        now = self.clock() if target == RideStatus.COMPLETED else None
        
        with self._lock:
            stored = self._rides.get(ride_id)
            if stored is None:
                raise InvalidArgument(f"Unknown ride: '{ride_id}'")
            
            current = stored.status
            if target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransition(current, target)
            
            del self._by_status[current][ride_id]
            stored.status = target
            self._by_status[target][ride_id] = stored
            
            if target == RideStatus.COMPLETED:
                stored.completed_at = now
            
            vehicle_to_release = stored.vehicle_id if target.is_terminal else None
            result = stored.copy()
            snapshot = self._pending_snapshot_locked()
        
        logger.info("Ride %s: %s -> %s", ride_id, current, target)
        
        if vehicle_to_release:
            self._release_quietly(vehicle_to_release, ride_id)
        
        self._notify(snapshot)
        return result
    
    def start(self, ride: RideRef) -> RideRequest:
        return self.transition(ride, RideStatus.IN_PROGRESS)
    
    def complete(self, ride: RideRef) -> RideRequest:
        return self.transition(ride, RideStatus.COMPLETED)
    
    def cancel(self, ride: RideRef) -> RideRequest:
        return self.transition(ride, RideStatus.CANCELLED)
    
    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    
    def get_by_status(self, status: Union[RideStatus, str]) -> List[RideRequest]:
        status = self._parse_status(status)
        with self._lock:
            return [r.copy() for r in self._by_status[status].values()]
    
    def get_by_id(self, ride_id: str) -> Optional[RideRequest]:
        with self._lock:
            ride = self._rides.get(ride_id)
            return ride.copy() if ride else None
    
    def all_rides(self) -> List[RideRequest]:
        with self._lock:
            return [r.copy() for r in self._rides.values()]
    
    def active_ride_for(self, vehicle_id: str) -> Optional[RideRequest]:
        """Ride currently holding the vehicle (ASSIGNED or IN_PROGRESS), if any."""
        with self._lock:
            for status in (RideStatus.ASSIGNED, RideStatus.IN_PROGRESS):
                for ride in self._by_status[status].values():
                    if ride.vehicle_id == vehicle_id:
                        return ride.copy()
        return None
    
    @property
    def assignment_history(self) -> List[Dict]:
        """Copy of every dispatch as {ride_id, vehicle_id, strategy}, oldest first."""
        with self._lock:
            return [dict(entry) for entry in self._assignment_history]
    
    @property
    def total_rides(self) -> int:
        with self._lock:
            return len(self._rides)
    
    def count_by_status(self, status: Union[RideStatus, str]) -> int:
        status = self._parse_status(status)
        with self._lock:
            return len(self._by_status[status])
    
    def statistics(self) -> Dict:
        """Ride totals per status and dispatch strategy counts."""
        with self._lock:
            by_strategy = {STRATEGY_FIFO: 0, STRATEGY_NEAREST: 0}
            for entry in self._assignment_history:
                by_strategy[entry['strategy']] += 1
            return {
                'total_rides': len(self._rides),
                'by_status': {str(s): len(rides) for s, rides in self._by_status.items()},
                'total_assignments': len(self._assignment_history),
                'by_strategy': by_strategy,
            }
    
    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    
    def subscribe(self, callback: Callable[[List[RideRequest]], None]) -> Callable[[], None]:
        """
        Call ``callback(rides)`` with copies of all rides after every mutation.
        
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
    
    def _notify(self, pending: Optional[Tuple[int, List[RideRequest]]]):
        if pending is None:
            return
        version, rides = pending
        with self._notify_lock:
            # Drop copies older than one already delivered
            if version <= self._delivered_version:
                return
            self._delivered_version = version
            with self._lock:
                observers = list(self._observers)
            for callback in observers:
                try:
                    callback(rides)
                except Exception:
                    logger.exception("Ride observer %r failed", callback)
    
    def _pending_snapshot_locked(self) -> Optional[Tuple[int, List[RideRequest]]]:
        self._version += 1
        if not self._observers:
            return None
        return self._version, [r.copy() for r in self._rides.values()]
    
    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    
    def _release_quietly(self, vehicle_id: str, ride_id: str):
        try:
            self.fleet.release(vehicle_id)
        except (NotAssigned, InvalidVehicle) as e:
            logger.warning("Could not release vehicle %s after ride %s: %s",
                           vehicle_id, ride_id, e)
    
    @staticmethod
    def _ride_id(ride: Optional[RideRef]) -> str:
        if isinstance(ride, RideRequest):
            return ride.id
        if isinstance(ride, str) and ride:
            return ride
        raise InvalidArgument("A ride is required")
    
    @staticmethod
    def _parse_status(status: Union[RideStatus, str]) -> RideStatus:
        if isinstance(status, RideStatus):
            return status
        try:
            return RideStatus(str(status).upper())
        except ValueError:
            raise InvalidArgument(f"Unknown ride status: {status!r}") from None
