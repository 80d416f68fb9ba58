from datetime import datetime, timedelta

import pytest

from dispatch.dispatch_ledger import DispatchLedger
from domain.location import GeoPoint
from domain.vehicle import Vehicle
from fleet.fleet_registry import FleetRegistry

ZURICH = GeoPoint(47.37, 8.54, "Zurich HB")
KM_PER_DEGREE_LAT = 111.195


class FakeClock:
    """Clock that moves one minute every time it is read."""
    
    def __init__(self, start=datetime(2024, 1, 1, 9, 0)):
        self.now = start
    
    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


def point_north_of(origin, km, label=""):
    return GeoPoint(origin.latitude + km / KM_PER_DEGREE_LAT, origin.longitude, label)


@pytest.fixture
def make_vehicle():
    counter = {'n': 0}
    
    def factory(plate=None, location=ZURICH, driver_name="Test Driver", model="Toyota Prius"):
        counter['n'] += 1
        return Vehicle(
            driver_name=driver_name,
            plate=plate if plate is not None else f"ZH{counter['n']:04d}",
            model=model,
            location=location,
        )
    
    return factory


@pytest.fixture
def fleet():
    return FleetRegistry()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(fleet, clock):
    return DispatchLedger(fleet, clock=clock)


def assert_partitioned(fleet):
    snap = fleet.snapshot()
    all_ids = {v.id for v in snap.all_vehicles}
    available_ids = {v.id for v in snap.available}
    assigned_ids = {v.id for v in snap.assigned}
    assert not available_ids & assigned_ids
    assert available_ids | assigned_ids == all_ids
    assert len(snap.available) + len(snap.assigned) == len(snap.all_vehicles)
    assert all(v.available for v in snap.available)
    assert not any(v.available for v in snap.assigned)
