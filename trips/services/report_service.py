"""
Compliance Report Service.

Packages a segment plan and its daily logs into the report returned to
the front end, and provides TripPlanner, the per-request facade that runs
distance lookup, segmentation and log generation in order.

Response format (consumed by the front end as-is):
=================================================
{
    "route": {
        "totalDistance": 2805.0,
        "totalTime": 46.2,
        "waypoints": [{"name", "lat", "lng", "type", "estimatedArrival"}],
        "fuelStops": 4,
        "restPeriods": [{"start", "end", "duration", "type"}]
    },
    "logSheets": [{"date", "drivingTime", "onDutyTime", "restTime",
                   "violations", "entries": [{"time", "status", "location"}]}]
}
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from .eld_service import DailyLog, ELDLogService
from .exceptions import InputValidationError
from .hos_service import HOSConfig
from .route_service import DistanceProvider
from .segment_service import RestPeriod, SegmentPlan, TripSegmenter, Waypoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripRequest:
    """Planning input as received from the caller."""
    current_location: str
    pickup_location: str
    dropoff_location: str
    current_cycle_used: float
    start_time: datetime

    @property
    def place_names(self) -> List[str]:
        return [self.current_location, self.pickup_location, self.dropoff_location]


@dataclass
class ComplianceReport:
    """Everything the front end needs to draw the route and log sheets."""
    total_distance: float
    total_driving_time: float
    waypoints: List[Waypoint]
    fuel_stops: int
    rest_periods: List[RestPeriod]
    daily_logs: List[DailyLog]
    departure_time: datetime
    arrival_time: datetime
    cycle_hours_remaining: float

    @property
    def violation_count(self) -> int:
        return sum(len(log.violations) for log in self.daily_logs)

    def to_dict(self) -> Dict:
        return {
            'route': {
                'totalDistance': round(self.total_distance, 1),
                'totalTime': round(self.total_driving_time, 2),
                'waypoints': [w.to_dict() for w in self.waypoints],
                'fuelStops': self.fuel_stops,
                'restPeriods': [r.to_dict() for r in self.rest_periods],
            },
            'logSheets': [log.to_dict() for log in self.daily_logs],
        }


def build_report(plan: SegmentPlan, daily_logs: List[DailyLog], config: Optional[HOSConfig] = None) -> ComplianceReport:
    """Aggregate a plan and its logs into a ComplianceReport."""
    config = config or HOSConfig()
    return ComplianceReport(
        total_distance=plan.total_distance_miles,
        total_driving_time=plan.total_driving_hours,
        waypoints=list(plan.waypoints),
        fuel_stops=plan.fuel_stops,
        rest_periods=list(plan.rest_periods),
        daily_logs=daily_logs,
        departure_time=plan.departure_time,
        arrival_time=plan.arrival_time,
        cycle_hours_remaining=max(0.0, config.cycle_hours - plan.final_state.cycle_hours_used)
    )


class TripPlanner:
    """
    Runs one trip request end to end.

    Each ``plan`` call builds its own segmenter state; a planner can be
    shared between requests.
    """

    def __init__(self, provider: DistanceProvider, config: Optional[HOSConfig] = None):
        self.provider = provider
        self.config = config or HOSConfig()

    def plan(self, request: TripRequest) -> ComplianceReport:
        """
        Plan a trip.

        Raises:
            InputValidationError: If the request is malformed
            DistanceProviderError: If distances could not be looked up
        """
        self._validate(request)

        logger.info(
            f"Planning trip: {request.current_location} -> "
            f"{request.pickup_location} -> {request.dropoff_location}"
        )

        route = self.provider.get_route(request.place_names)
        plan = TripSegmenter(self.config).segment(
            stops=route.locations,
            legs=route.legs,
            current_cycle_used=request.current_cycle_used,
            start_time=request.start_time
        )
        daily_logs = ELDLogService(self.config).generate_logs(plan)
        report = build_report(plan, daily_logs, self.config)

        logger.info(
            f"Trip planned: {report.total_distance:.1f} miles, "
            f"{report.total_driving_time:.1f}h driving, {len(daily_logs)} log sheets"
        )
        return report

    def _validate(self, request: TripRequest) -> None:
        for label, value in (
            ('currentLocation', request.current_location),
            ('pickupLocation', request.pickup_location),
            ('dropoffLocation', request.dropoff_location),
        ):
            if not isinstance(value, str) or not value.strip():
                raise InputValidationError(f"{label} is required")

        cycle = request.current_cycle_used
        if (
            isinstance(cycle, bool)
            or not isinstance(cycle, (int, float))
            or not math.isfinite(cycle)
            or not 0 <= cycle <= self.config.cycle_hours
        ):
            raise InputValidationError(
                f"currentCycleUsed must be between 0 and {self.config.cycle_hours:g}"
            )
