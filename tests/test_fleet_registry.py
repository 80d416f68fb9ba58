import random
import threading

import pytest

from domain.exceptions import (
    DuplicateIdentifier,
    InvalidArgument,
    InvalidVehicle,
    NoVehicleAvailable,
    NotAssigned,
)
from domain.location import GeoPoint
from conftest import ZURICH, assert_partitioned, point_north_of


def test_register_makes_vehicle_available(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    assert vehicle.available
    assert fleet.available_count == 1
    assert fleet.assigned_count == 0
    assert fleet.lookup(vehicle.id).plate == vehicle.plate


@pytest.mark.parametrize("field, value", [
    ("driver_name", ""),
    ("driver_name", "   "),
    ("plate", ""),
    ("plate", " \t"),
    ("location", None),
    ("location", (47.0, 8.0)),
    ("location", "Zurich"),
    ("driver_name", None),
    ("driver_name", 42),
    ("plate", None),
    ("plate", 1234),
])
def test_register_rejects_invalid_vehicle(fleet, make_vehicle, field, value):
    vehicle = make_vehicle()
    setattr(vehicle, field, value)
    with pytest.raises(InvalidVehicle):
        fleet.register(vehicle)
    assert fleet.total_count == 0


def test_register_rejects_none(fleet):
    with pytest.raises(InvalidVehicle):
        fleet.register(None)


@pytest.mark.parametrize("order", [(0, 1), (1, 0)])
def test_duplicate_plate_rejected_in_any_order(fleet, make_vehicle, order):
    vehicles = [make_vehicle(plate="QR1234", driver_name="A"),
                make_vehicle(plate="QR1234", driver_name="B")]
    outcomes = []
    for index in order:
        try:
            fleet.register(vehicles[index])
            outcomes.append("ok")
        except DuplicateIdentifier:
            outcomes.append("duplicate")
    assert sorted(outcomes) == ["duplicate", "ok"]
    assert fleet.total_count == 1


def test_plate_never_reused_after_acquire(fleet, make_vehicle):
    fleet.register(make_vehicle(plate="QR1"))
    fleet.acquire_fifo()
    with pytest.raises(DuplicateIdentifier):
        fleet.register(make_vehicle(plate="QR1"))


def test_duplicate_id_rejected(fleet, make_vehicle):
    first = make_vehicle()
    second = make_vehicle()
    second.id = first.id
    fleet.register(first)
    with pytest.raises(DuplicateIdentifier):
        fleet.register(second)


def test_register_many_collects_rejections(fleet, make_vehicle, caplog):
    vehicles = [make_vehicle(plate="A1"), make_vehicle(plate="A1"), make_vehicle(plate=""),
                make_vehicle(plate="B2")]
    with caplog.at_level("WARNING"):
        registered, rejected = fleet.register_many(vehicles)
    assert [v.plate for v in registered] == ["A1", "B2"]
    assert [type(e) for _, e in rejected] == [DuplicateIdentifier, InvalidVehicle]
    assert "Skipping vehicle" in caplog.text


def test_acquire_fifo_order(fleet, make_vehicle):
    v1, v2, v3 = (fleet.register(make_vehicle()) for _ in range(3))
    assert [fleet.acquire_fifo().id for _ in range(3)] == [v1.id, v2.id, v3.id]
    with pytest.raises(NoVehicleAvailable):
        fleet.acquire_fifo()


def test_acquire_fifo_empty(fleet):
    with pytest.raises(NoVehicleAvailable):
        fleet.acquire_fifo()


def test_released_vehicle_goes_to_back_of_queue(fleet, make_vehicle):
    v1 = fleet.register(make_vehicle())
    v2 = fleet.register(make_vehicle())
    fleet.acquire_fifo()
    fleet.release(v1)
    assert fleet.acquire_fifo().id == v2.id
    assert fleet.acquire_fifo().id == v1.id


@pytest.mark.parametrize("order", [(5, 1, 10), (1, 10, 5), (10, 5, 1)])
def test_acquire_nearest_picks_closest(fleet, make_vehicle, order):
    pickup = ZURICH
    ids = {}
    for km in order:
        vehicle = fleet.register(make_vehicle(location=point_north_of(pickup, km)))
        ids[km] = vehicle.id
    assert fleet.acquire_nearest(pickup).id == ids[1]
    assert fleet.acquire_nearest(pickup).id == ids[5]


def test_acquire_nearest_tie_goes_to_longest_available(fleet, make_vehicle):
    first = fleet.register(make_vehicle(location=point_north_of(ZURICH, 2)))
    fleet.register(make_vehicle(location=point_north_of(ZURICH, 2)))
    assert fleet.acquire_nearest(ZURICH).id == first.id


def test_acquire_nearest_skips_unusable_locations(fleet, make_vehicle):
    fleet.register(make_vehicle(location=GeoPoint(float('nan'), 8.5)))
    far = fleet.register(make_vehicle(location=point_north_of(ZURICH, 50)))
    assert fleet.acquire_nearest(ZURICH).id == far.id
    with pytest.raises(NoVehicleAvailable):
        fleet.acquire_nearest(ZURICH)
    assert fleet.available_count == 1


def test_acquire_nearest_empty_and_missing_point(fleet, make_vehicle):
    with pytest.raises(NoVehicleAvailable):
        fleet.acquire_nearest(ZURICH)
    fleet.register(make_vehicle())
    with pytest.raises(InvalidArgument):
        fleet.acquire_nearest(None)


def test_acquired_vehicle_marked_unavailable(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    acquired = fleet.acquire_fifo()
    assert not acquired.available
    assert not fleet.lookup(vehicle.id).available
    assert [v.id for v in fleet.assigned_vehicles()] == [vehicle.id]
    assert fleet.available_vehicles() == []


def test_release_errors(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    with pytest.raises(NotAssigned):
        fleet.release(vehicle)
    with pytest.raises(NotAssigned):
        fleet.release("no-such-id")
    with pytest.raises(InvalidVehicle):
        fleet.release(None)


def test_release_accepts_id(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    fleet.acquire_fifo()
    released = fleet.release(vehicle.id)
    assert released.available
    assert fleet.available_count == 1


def test_lookup_unknown_returns_none(fleet):
    assert fleet.lookup("missing") is None


def test_returned_vehicles_are_copies(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    vehicle.available = False
    vehicle.location = GeoPoint(0, 0)
    stored = fleet.lookup(vehicle.id)
    assert stored.available
    assert stored.location == ZURICH


def test_update_location(fleet, make_vehicle):
    vehicle = fleet.register(make_vehicle())
    target = GeoPoint(47.4, 8.6, "Oerlikon")
    moved = fleet.update_location(vehicle.id, target)
    assert moved.location == target
    assert fleet.lookup(vehicle.id).location == target
    with pytest.raises(InvalidVehicle):
        fleet.update_location("missing", target)
    with pytest.raises(InvalidArgument):
        fleet.update_location(vehicle, None)


def test_partition_invariant_random_operations(fleet, make_vehicle):
    rng = random.Random(7)
    for _ in range(300):
        op = rng.choice(["register", "fifo", "nearest", "release"])
        try:
            if op == "register":
                fleet.register(make_vehicle(location=point_north_of(ZURICH, rng.uniform(0, 20))))
            elif op == "fifo":
                fleet.acquire_fifo()
            elif op == "nearest":
                fleet.acquire_nearest(ZURICH)
            else:
                assigned = fleet.assigned_vehicles()
                if assigned:
                    fleet.release(rng.choice(assigned))
        except NoVehicleAvailable:
            pass
        assert_partitioned(fleet)


def test_statistics(fleet, make_vehicle):
    assert fleet.statistics()['utilization'] == 0.0
    for _ in range(4):
        fleet.register(make_vehicle())
    fleet.acquire_fifo()
    stats = fleet.statistics()
    assert stats == {
        'total_vehicles': 4,
        'available_vehicles': 3,
        'assigned_vehicles': 1,
        'utilization': 25.0,
    }


def test_observers_receive_snapshots(fleet, make_vehicle):
    seen = []
    unsubscribe = fleet.subscribe(seen.append)
    vehicle = fleet.register(make_vehicle())
    fleet.acquire_fifo()
    fleet.release(vehicle)
    assert [len(s.available) for s in seen] == [1, 0, 1]
    assert [len(s.assigned) for s in seen] == [0, 1, 0]
    
    unsubscribe()
    fleet.acquire_fifo()
    assert len(seen) == 3


def test_failed_operation_does_not_notify(fleet):
    seen = []
    fleet.subscribe(seen.append)
    with pytest.raises(NoVehicleAvailable):
        fleet.acquire_fifo()
    assert seen == []


def test_failing_observer_is_isolated(fleet, make_vehicle, caplog):
    seen = []
    
    def broken(snapshot):
        raise RuntimeError("boom")
    
    fleet.subscribe(broken)
    fleet.subscribe(seen.append)
    with caplog.at_level("ERROR"):
        vehicle = fleet.register(make_vehicle())
    assert fleet.lookup(vehicle.id) is not None
    assert len(seen) == 1
    assert "Fleet observer" in caplog.text


def test_observer_can_read_registry(fleet, make_vehicle):
    counts = []
    fleet.subscribe(lambda snapshot: counts.append(fleet.available_count))
    fleet.register(make_vehicle())
    assert counts == [1]


def test_rejected_location_does_not_break_nearest_matching(fleet, make_vehicle):
    with pytest.raises(InvalidVehicle):
        fleet.register(make_vehicle(location=(47.0, 8.0)))
    near = fleet.register(make_vehicle(location=point_north_of(ZURICH, 1)))
    assert fleet.acquire_nearest(ZURICH).id == near.id


@pytest.mark.parametrize("point", [None, (47.0, 8.0)])
def test_location_arguments_must_be_geopoints(fleet, make_vehicle, point):
    vehicle = fleet.register(make_vehicle())
    with pytest.raises(InvalidArgument):
        fleet.acquire_nearest(point)
    with pytest.raises(InvalidArgument):
        fleet.update_location(vehicle.id, point)
    assert fleet.available_count == 1


def test_snapshot_versions_increase(fleet, make_vehicle):
    seen = []
    fleet.subscribe(seen.append)
    vehicle = fleet.register(make_vehicle())
    fleet.acquire_fifo()
    fleet.release(vehicle)
    versions = [s.version for s in seen]
    assert versions == sorted(versions)
    assert len(set(versions)) == 3
    assert fleet.snapshot().version == versions[-1]


def test_observers_never_go_back_to_older_state(fleet, make_vehicle, monkeypatch):
    fleet.register(make_vehicle())
    fleet.register(make_vehicle())
    seen = []
    fleet.subscribe(lambda snapshot: seen.append(len(snapshot.available)))
    
    original_notify = fleet._notify
    paused = threading.Event()
    resume = threading.Event()
    
    def delayed_notify(snapshot):
        if threading.current_thread().name == "slow-acquire":
            paused.set()
            resume.wait(5)
        original_notify(snapshot)
    
    monkeypatch.setattr(fleet, "_notify", delayed_notify)
    
    slow = threading.Thread(target=fleet.acquire_fifo, name="slow-acquire")
    slow.start()
    assert paused.wait(5)
    fleet.acquire_fifo()
    resume.set()
    slow.join(5)
    
    assert seen == [0]
    assert seen[-1] == fleet.available_count
