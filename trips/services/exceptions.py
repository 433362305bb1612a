"""
Exceptions raised by the trip planning services.

Compliance violations are not exceptions: they are recorded on the plan
and reported on the daily logs. Only conditions that prevent a plan from
being produced at all are raised.
"""


class TripPlanningError(Exception):
    """Base class for trip planning errors."""
    pass


class InputValidationError(TripPlanningError):
    """Malformed or out-of-range planning input, rejected before planning."""
    pass


class DistanceProviderError(TripPlanningError):
    """Distance/drive-time lookup failed or returned incomplete data."""
    pass


class SegmentationError(TripPlanningError):
    """The segmenter could not converge on a complete schedule."""
    pass
