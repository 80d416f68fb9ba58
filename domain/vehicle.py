"""
Vehicle record owned by the fleet registry.
"""

import uuid
from dataclasses import dataclass, field

from .location import GeoPoint


@dataclass
class Vehicle:
    """
    A taxi in the fleet.
    
    Only the fleet registry flips ``available`` or replaces ``location``;
    everybody else works on copies handed out by the registry.
    """
    driver_name: str
    plate: str
    model: str
    location: GeoPoint
    available: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    
    def copy(self) -> 'Vehicle':
        """Detached copy for snapshots (GeoPoint is immutable, so shallow is enough)."""
        return Vehicle(
            driver_name=self.driver_name,
            plate=self.plate,
            model=self.model,
            location=self.location,
            available=self.available,
            id=self.id,
        )
    
    def __str__(self) -> str:
        return f"{self.model} ({self.plate}) - Driver: {self.driver_name}"
