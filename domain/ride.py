"""
Ride request record and its lifecycle states.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .location import GeoPoint, distance_km


class RideStatus(Enum):
    REQUESTED = "REQUESTED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    
    @property
    def is_terminal(self) -> bool:
        return self in (RideStatus.COMPLETED, RideStatus.CANCELLED)
    
    def __str__(self) -> str:
        return self.value


@dataclass
class RideRequest:
    """
    A single trip from pickup to dropoff.
    
    The assigned vehicle is kept as an id; the fleet registry stays the owner
    of the vehicle itself and can be asked for it with ``lookup``.
    """
    customer_name: str
    pickup: GeoPoint
    dropoff: GeoPoint
    requested_at: datetime = field(default_factory=datetime.now)
    status: RideStatus = RideStatus.REQUESTED
    vehicle_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    
    @property
    def distance_km(self) -> float:
        """Great-circle distance between pickup and dropoff."""
        return distance_km(self.pickup, self.dropoff)
    
    @property
    def wait_seconds(self) -> Optional[float]:
        """Seconds between the request and the assignment, None while unassigned."""
        if self.assigned_at is None:
            return None
        return (self.assigned_at - self.requested_at).total_seconds()
    
    def copy(self) -> 'RideRequest':
        return RideRequest(
            customer_name=self.customer_name,
            pickup=self.pickup,
            dropoff=self.dropoff,
            requested_at=self.requested_at,
            status=self.status,
            vehicle_id=self.vehicle_id,
            assigned_at=self.assigned_at,
            completed_at=self.completed_at,
            id=self.id,
        )
    
    def __str__(self) -> str:
        return f"Ride {self.id[:8]} for {self.customer_name} [{self.status}]"
