"""Errors raised by lookups that must succeed before a fare is computed."""


class FareServiceError(Exception):
    """Base class for all service-level failures."""


class RuleNotFoundError(FareServiceError):
    """No active pricing rule exists for a (service type, vehicle type) pair."""

    def __init__(self, service_type, vehicle_type):
        self.service_type = service_type
        self.vehicle_type = vehicle_type
        super().__init__(
            f"No active pricing rule for {getattr(service_type, 'value', service_type)}"
            f"/{getattr(vehicle_type, 'value', vehicle_type)}"
        )


class PackageNotFoundError(FareServiceError):
    """The requested rental package does not exist or is inactive."""


class RouteUnavailableError(FareServiceError):
    """The upstream distance/duration lookup failed."""


class DraftNotFoundError(FareServiceError):
    """The booking draft expired or never existed."""


class BookingNotFoundError(FareServiceError):
    pass
