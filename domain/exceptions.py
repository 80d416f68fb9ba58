"""
Error taxonomy raised by the fleet registry and the dispatch ledger.
"""


class DispatchError(Exception):
    """Base class for every business-rule failure of the dispatch engine."""


class InvalidVehicle(DispatchError):
    """Vehicle data failed validation, or no real vehicle was supplied."""


class DuplicateIdentifier(DispatchError):
    """A vehicle with the same plate (or id) is already registered."""


class NoVehicleAvailable(DispatchError):
    """Acquisition attempted against an empty available pool."""


class NotAssigned(DispatchError):
    """Release attempted on a vehicle that is not currently assigned."""


class InvalidTransition(DispatchError):
    """
    A ride status change that does not match any edge of the ride state machine.
    
    Attributes:
        current: Status the ride was in
        requested: Status that was rejected
    """
    
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move ride from {current} to {requested}")


class InvalidArgument(DispatchError, ValueError):
    """Missing ride reference, unknown status or malformed request parameters."""
