"""
Passenger agent: asks for a ride until one is dispatched or patience runs out.
"""

import logging

from mesa import Agent

from domain.exceptions import NoVehicleAvailable
from domain.ride import RideStatus

logger = logging.getLogger(__name__)


class PassengerAgent(Agent):
    """
    A customer waiting at ``pickup`` who wants to go to ``dropoff``.
    
    Status is one of "waiting", "assigned", "riding", "done", "gave_up".
    """
    
    def __init__(self, unique_id, model, name, pickup, dropoff, patience=10):
        super().__init__(unique_id, model)
        self.name = name
        self.pickup = pickup
        self.dropoff = dropoff
        self.patience = patience
        self.status = "waiting"
        self.wait_time = 0
        self.ride_id = None
    
    def step(self):
        if self.ride_id is None:
            self._request()
        else:
            self._follow_ride()
    
    def _request(self):
        try:
            ride = self.model.ledger.request_ride(
                self.name, self.pickup, self.dropoff, use_nearest=self.model.use_nearest
            )
        except NoVehicleAvailable:
            self.wait_time += 1
            if self.wait_time >= self.patience:
                logger.debug("%s gave up after %d steps", self.name, self.wait_time)
                self.status = "gave_up"
                self.model.passengers_gave_up += 1
                self.model.schedule.remove(self)
            return
        
        self.ride_id = ride.id
        self.status = "assigned"
        self.model.dispatch_waits.append(self.wait_time)
    
    def _follow_ride(self):
        ride = self.model.ledger.get_by_id(self.ride_id)
        if ride.status.is_terminal:
            self.status = "done"
            self.model.schedule.remove(self)
        elif ride.status == RideStatus.IN_PROGRESS:
            self.status = "riding"
