"""
City simulation that drives the dispatch engine with taxi and passenger agents.
"""

import logging
from datetime import datetime, timedelta

import numpy as np
from mesa import Model
from mesa.time import RandomActivation
from mesa.datacollection import DataCollector

from agents.taxi import TaxiAgent
from agents.passenger import PassengerAgent
from dispatch.dispatch_ledger import DispatchLedger
from domain.ride import RideStatus
from fleet.fleet_registry import FleetRegistry
from model.config import DEFAULT_BOUNDS
from utils.fleet_factory import create_random_vehicles, random_address, random_point

logger = logging.getLogger(__name__)

SIMULATION_START = datetime(2024, 1, 1, 8, 0, 0)
MAX_STEPS = 1000


class CityModel(Model):
    """
    Main model for the taxi dispatch simulation.
    
    One FleetRegistry and one DispatchLedger are shared by every agent; the
    ledger's clock follows simulated time so ride timestamps line up with steps.
    """
    
    def __init__(self, num_taxis=10, request_rate=0.5, use_nearest=True, bounds=DEFAULT_BOUNDS,
                 speed_kmh=30.0, step_minutes=1.0, cancel_rate=0.02, patience=10, seed=None,
                 fleet_factory=None):
        super().__init__()
        
        # Model parameters
        self.num_taxis = num_taxis
        self.request_rate = request_rate
        self.use_nearest = use_nearest
        self.bounds = tuple(bounds)
        self.speed_kmh = speed_kmh
        self.step_minutes = step_minutes
        self.cancel_rate = cancel_rate
        self.patience = patience
        self.rng = np.random.default_rng(seed)
        if seed is not None:
            self.random.seed(seed)
        
        # Dispatch engine
        self.fleet = FleetRegistry()
        self.ledger = DispatchLedger(self.fleet, clock=self._clock)
        
        self.schedule = RandomActivation(self)
        self.passengers_spawned = 0
        self.passengers_gave_up = 0
        self.dispatch_waits = []  # steps each dispatched passenger waited
        
        self.datacollector = DataCollector(
            model_reporters={
                "Waiting_Passengers": lambda m: len([a for a in m.schedule.agents
                                                     if isinstance(a, PassengerAgent) and a.status == "waiting"]),
                "Available_Taxis": lambda m: m.fleet.available_count,
                "Busy_Taxis": lambda m: m.fleet.assigned_count,
                "Completed_Rides": lambda m: m.ledger.count_by_status(RideStatus.COMPLETED),
                "Cancelled_Rides": lambda m: m.ledger.count_by_status(RideStatus.CANCELLED),
                "Gave_Up": lambda m: m.passengers_gave_up,
                "Avg_Wait_Time": lambda m: m._calculate_avg_wait_time(),
                "Taxi_Utilization": lambda m: m.fleet.statistics()['utilization'],
            },
            agent_reporters={
                "Status": lambda a: a.status if hasattr(a, 'status') else None,
            }
        )
        
        self._create_taxis(fleet_factory or create_random_vehicles)
        self.running = True
    
    def _clock(self):
        """Simulated wall clock, advanced by step_minutes per step."""
        return SIMULATION_START + timedelta(minutes=self.schedule.time * self.step_minutes)
    
    def _create_taxis(self, fleet_factory):
        """Seed the fleet and give every registered vehicle a taxi agent."""
        vehicles = fleet_factory(self.num_taxis, self.rng, self.bounds)
        registered, rejected = self.fleet.register_many(vehicles)
        if rejected:
            logger.info("Seeded %d taxis, %d rejected", len(registered), len(rejected))
        
        for vehicle in registered:
            taxi = TaxiAgent(self.next_id(), self, vehicle.id)
            self.schedule.add(taxi)
    
    def _spawn_passengers(self):
        """Spawn a Poisson number of new passengers with random endpoints."""
        for _ in range(int(self.rng.poisson(self.request_rate))):
            pickup = random_point(self.rng, self.bounds, random_address(self.rng))
            dropoff = random_point(self.rng, self.bounds, random_address(self.rng))
            self.passengers_spawned += 1
            passenger = PassengerAgent(
                self.next_id(), self, f"Passenger {self.passengers_spawned}",
                pickup, dropoff, patience=self.patience
            )
            self.schedule.add(passenger)
    
    def step(self):
        """Execute one step of the simulation."""
        self._spawn_passengers()
        
        # Advance all agents
        self.schedule.step()
        
        self.datacollector.collect(self)
        
        if self.schedule.time >= MAX_STEPS:
            self.running = False
    
    def _calculate_avg_wait_time(self):
        """Average wait time of passengers still waiting for a taxi."""
        waiting = [a for a in self.schedule.agents
                   if isinstance(a, PassengerAgent) and a.status == "waiting"]
        if waiting:
            return sum(p.wait_time for p in waiting) / len(waiting)
        return 0
    
    def get_metrics_frame(self):
        """Per-step metrics as a pandas DataFrame."""
        return self.datacollector.get_model_vars_dataframe()
    
    def summary(self):
        """Final figures of the run."""
        rides = self.ledger.statistics()
        completed = self.ledger.get_by_status(RideStatus.COMPLETED)
        return {
            'steps': self.schedule.time,
            'passengers_spawned': self.passengers_spawned,
            'passengers_gave_up': self.passengers_gave_up,
            'rides_completed': rides['by_status']['COMPLETED'],
            'rides_cancelled': rides['by_status']['CANCELLED'],
            'rides_active': rides['by_status']['ASSIGNED'] + rides['by_status']['IN_PROGRESS'],
            'avg_trip_km': float(np.mean([r.distance_km for r in completed])) if completed else 0.0,
            'avg_wait_steps': float(np.mean(self.dispatch_waits)) if self.dispatch_waits else 0.0,
            'taxi_utilization': self.fleet.statistics()['utilization'],
        }
