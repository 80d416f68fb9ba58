"""
Demo fleet seeding. Kept outside the engine and handed to the simulation as a
plain function so tests and callers can substitute their own.
"""

from typing import List, Optional, Tuple

import numpy as np

from domain.location import GeoPoint
from domain.vehicle import Vehicle
from model.config import DEFAULT_BOUNDS

Bounds = Tuple[float, float, float, float]  # lat_min, lat_max, lon_min, lon_max

DRIVER_NAMES = [
    "Emily Williams", "John Smith", "Sarah Davis", "Michael Chen", "David Brown",
    "Kevin Jones", "Lisa Wilson", "Robert Lee", "Maria Garcia", "James Miller",
]

CAR_MODELS = [
    "Toyota Prius", "Honda Civic", "Tesla Model 3", "Ford Fusion", "Nissan Leaf",
    "Chevrolet Bolt", "Hyundai Ioniq", "Kia Niro", "Toyota Camry", "Honda Accord",
]

NEIGHBORHOODS = [
    "Downtown", "Mission District", "SoMa", "Marina", "North Beach",
    "Castro", "Haight-Ashbury", "Chinatown", "Sunset District", "Richmond District",
]

STREET_NAMES = [
    "Market St", "Valencia St", "Van Ness Ave", "Mission St", "Geary Blvd",
    "Fillmore St", "Divisadero St", "Columbus Ave", "Folsom St", "Bryant St",
]


def random_point(rng: np.random.Generator, bounds: Bounds, label: str = "") -> GeoPoint:
    """Uniform random point inside the bounding box."""
    lat_min, lat_max, lon_min, lon_max = bounds
    return GeoPoint(
        latitude=float(rng.uniform(lat_min, lat_max)),
        longitude=float(rng.uniform(lon_min, lon_max)),
        label=label,
    )


def random_address(rng: np.random.Generator) -> str:
    number = int(rng.integers(100, 2000))
    street = STREET_NAMES[int(rng.integers(len(STREET_NAMES)))]
    neighborhood = NEIGHBORHOODS[int(rng.integers(len(NEIGHBORHOODS)))]
    return f"{number} {street}, {neighborhood}"


def create_random_vehicles(count: int, rng: Optional[np.random.Generator] = None,
                           bounds: Optional[Bounds] = None) -> List[Vehicle]:
    """
    Create random taxis inside a bounding box.
    
    Plates are drawn at random, so a batch may contain duplicates; the registry
    rejects those when the batch is registered.
    
    Args:
        count: Number of vehicles to create
        rng: numpy random generator (a fresh unseeded one if omitted)
        bounds: (lat_min, lat_max, lon_min, lon_max)
    
    Returns:
        List of unregistered vehicles
    """
    rng = rng if rng is not None else np.random.default_rng()
    bounds = bounds or DEFAULT_BOUNDS
    
    vehicles = []
    for _ in range(count):
        vehicles.append(Vehicle(
            driver_name=DRIVER_NAMES[int(rng.integers(len(DRIVER_NAMES)))],
            plate=f"QR{int(rng.integers(1000, 10000))}",
            model=CAR_MODELS[int(rng.integers(len(CAR_MODELS)))],
            location=random_point(rng, bounds, random_address(rng)),
        ))
    return vehicles
