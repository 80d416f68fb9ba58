"""
Core records of the dispatch engine: locations, vehicles, rides and errors.
"""

from .location import GeoPoint, distance_km, distances_km
from .vehicle import Vehicle
from .ride import RideRequest, RideStatus
from .exceptions import (
    DispatchError,
    InvalidVehicle,
    DuplicateIdentifier,
    NoVehicleAvailable,
    NotAssigned,
    InvalidTransition,
    InvalidArgument,
)

__all__ = [
    'GeoPoint', 'distance_km', 'distances_km', 'Vehicle', 'RideRequest', 'RideStatus',
    'DispatchError', 'InvalidVehicle', 'DuplicateIdentifier', 'NoVehicleAvailable',
    'NotAssigned', 'InvalidTransition', 'InvalidArgument',
]
