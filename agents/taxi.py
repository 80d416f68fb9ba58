"""
Taxi agent: drives its vehicle to the pickup and on to the dropoff of the ride
the ledger assigned to it.
"""

import logging

from mesa import Agent

from domain.location import GeoPoint, distance_km
from domain.ride import RideStatus

logger = logging.getLogger(__name__)


class TaxiAgent(Agent):
    """
    Moves one registered vehicle. The vehicle itself stays in the fleet
    registry; the agent only keeps its id.
    """
    
    def __init__(self, unique_id, model, vehicle_id):
        super().__init__(unique_id, model)
        self.vehicle_id = vehicle_id
        self.status = "idle"  # "idle", "picking_up", "driving"
        self.total_trips = 0
        self.distance_travelled = 0.0
    
    def step(self):
        ride = self.model.ledger.active_ride_for(self.vehicle_id)
        if ride is None:
            self.status = "idle"
            return
        
        if ride.status == RideStatus.ASSIGNED:
            if self.random.random() < self.model.cancel_rate:
                logger.debug("Ride %s cancelled before pickup", ride.id)
                self.model.ledger.cancel(ride)
                self.status = "idle"
                return
            self.status = "picking_up"
            if self._move_towards(ride.pickup):
                self.model.ledger.start(ride)
                self.status = "driving"
        elif ride.status == RideStatus.IN_PROGRESS:
            self.status = "driving"
            if self._move_towards(ride.dropoff):
                self.model.ledger.complete(ride)
                self.total_trips += 1
                self.status = "idle"
    
    def _move_towards(self, target: GeoPoint) -> bool:
        """
        Advance along the straight line to target by one step of travel.
        
        Returns:
            True once the vehicle has reached the target
        """
        vehicle = self.model.fleet.lookup(self.vehicle_id)
        current = vehicle.location
        remaining = distance_km(current, target)
        step_km = self.model.speed_kmh * self.model.step_minutes / 60.0
        
        if remaining <= step_km:
            self.model.fleet.update_location(self.vehicle_id, target)
            self.distance_travelled += remaining
            return True
        
        fraction = step_km / remaining
        moved = GeoPoint(
            latitude=current.latitude + (target.latitude - current.latitude) * fraction,
            longitude=current.longitude + (target.longitude - current.longitude) * fraction,
            label=f"en route to {target}",
        )
        self.model.fleet.update_location(self.vehicle_id, moved)
        self.distance_travelled += step_km
        return False
