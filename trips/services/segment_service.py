"""
Trip Segmentation Service.

Turns an ordered list of stops and the route legs between them into a
contiguous sequence of duty segments (driving, on-duty, off-duty,
sleeper berth) that honors the HOS rules enforced by DutyClock.

Planning rules:
==============
- Pickup and dropoff each take 1 hour on-duty (not driving) on arrival
- Each driving block is the longest one the duty clock allows, cut short
  only by the end of the leg or the next 1,000-mile fuel mark
- 8 hours driving -> 30-minute break
- 11-hour driving / 14-hour window exhausted -> 10-hour sleeper berth rest
- 70-hour cycle exhausted -> 34-hour restart (flagged as a violation)
- Fuel every 1,000 miles; when fuel and rest fall due at the same point,
  fuel first. Drivers also top off before an overnight rest once they are
  past the top-off mileage.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .exceptions import InputValidationError, SegmentationError
from .hos_service import EPSILON, DutyClock, DutyState, DutyStatus, HOSConfig, Violation
from .route_service import Location, RouteLeg

logger = logging.getLogger(__name__)

# Leftover distance below this is absorbed into the current block
MILES_EPSILON = 1e-6


class WaypointType(Enum):
    """Role of a waypoint on the route."""
    START = "start"
    PICKUP = "pickup"
    DROPOFF = "dropoff"
    FUEL = "fuel"
    REST = "rest"


class RestType(Enum):
    """Reason an off-duty period was inserted."""
    BREAK = "30-minute break"
    SHIFT_RESET = "10-hour rest"
    RESTART = "34-hour restart"


@dataclass(frozen=True)
class Waypoint:
    """A named, geolocated stop along the planned route."""
    location: Location
    waypoint_type: WaypointType
    estimated_arrival: datetime
    miles_from_start: float = 0.0

    def to_dict(self) -> Dict:
        return {
            'name': self.location.name,
            'lat': self.location.latitude,
            'lng': self.location.longitude,
            'type': self.waypoint_type.value,
            'estimatedArrival': self.estimated_arrival.isoformat(),
        }


@dataclass
class DutySegment:
    """A continuous period in a single duty status."""
    status: DutyStatus
    start_time: datetime
    end_time: datetime
    location: str = ""
    distance_miles: float = 0.0
    remarks: str = ""

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600


@dataclass
class RestPeriod:
    """An off-duty period inserted to satisfy an HOS rule."""
    start: datetime
    end: datetime
    rest_type: RestType

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    def to_dict(self) -> Dict:
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'duration': round(self.duration_hours, 2),
            'type': self.rest_type.value,
        }


@dataclass
class SegmentPlan:
    """Complete duty schedule for a trip."""
    segments: List[DutySegment]
    waypoints: List[Waypoint]
    violations: List[Violation]
    rest_periods: List[RestPeriod]
    fuel_stops: int
    departure_time: datetime
    arrival_time: datetime
    final_state: DutyState = field(default_factory=DutyState)
    initial_cycle_hours: float = 0.0

    @property
    def total_distance_miles(self) -> float:
        return sum(s.distance_miles for s in self.segments if s.status == DutyStatus.DRIVING)

    @property
    def total_driving_hours(self) -> float:
        return sum(s.duration_hours for s in self.segments if s.status == DutyStatus.DRIVING)


class TripSegmenter:
    """
    Plans an HOS-compliant duty schedule over a fixed route.

    The segmenter keeps no state between calls; every ``segment`` call
    works on a fresh DutyClock.
    """

    def __init__(self, config: Optional[HOSConfig] = None):
        self.config = config or HOSConfig()

    def segment(
        self,
        stops: Sequence[Location],
        legs: Sequence[RouteLeg],
        current_cycle_used: float,
        start_time: datetime
    ) -> SegmentPlan:
        """
        Build the duty schedule for a trip.

        Args:
            stops: Ordered stops: start, pickup(s), dropoff
            legs: Route legs between consecutive stops
            current_cycle_used: Hours already used in the 8-day cycle
            start_time: When the driver leaves the starting location

        Returns:
            SegmentPlan covering the trip from start_time to the end of dropoff

        Raises:
            InputValidationError: If the stops, legs or cycle hours are invalid
        """
        self._validate(stops, legs, current_cycle_used, start_time)

        total_miles = sum(leg.distance_miles for leg in legs)
        logger.info(
            f"Segmenting trip: {total_miles:.1f} miles over {len(legs)} legs, "
            f"cycle used: {current_cycle_used:.1f}h"
        )

        run = _PlanningRun(self.config, current_cycle_used, start_time, legs)
        run.add_waypoint(stops[0], WaypointType.START)

        # A trip that never moves collapses to its start waypoint
        moves = total_miles > 0
        last = len(legs) - 1
        for i, leg in enumerate(legs):
            if i == last:
                stop_type = WaypointType.DROPOFF
                hours = self.config.dropoff_duration_hours
                remarks = "Dropoff - unloading cargo"
            else:
                stop_type = WaypointType.PICKUP
                hours = self.config.pickup_duration_hours
                remarks = "Pickup - loading cargo"

            run.drive_leg(leg)
            if moves:
                run.add_waypoint(leg.end, stop_type)
            run.work_at(leg.end, hours, remarks)

        plan = run.finish()
        logger.info(
            f"Segmented trip into {len(plan.segments)} duty segments, "
            f"{plan.fuel_stops} fuel stops, {len(plan.rest_periods)} rest periods, "
            f"{len(plan.violations)} violations"
        )
        return plan

    def _validate(
        self,
        stops: Sequence[Location],
        legs: Sequence[RouteLeg],
        current_cycle_used: float,
        start_time: datetime
    ) -> None:
        if len(stops) < 2:
            raise InputValidationError("A trip needs at least a start and a dropoff")
        if len(legs) != len(stops) - 1:
            raise InputValidationError(
                f"Expected {len(stops) - 1} route legs for {len(stops)} stops, got {len(legs)}"
            )
        if not isinstance(start_time, datetime):
            raise InputValidationError("Trip start time must be a datetime")
        if not _is_number(current_cycle_used) or not (
            0 <= current_cycle_used <= self.config.cycle_hours
        ):
            raise InputValidationError(
                f"Current cycle used must be between 0 and {self.config.cycle_hours:g} hours, "
                f"got {current_cycle_used!r}"
            )
        for leg in legs:
            if not _is_number(leg.distance_miles) or leg.distance_miles < 0:
                raise InputValidationError(
                    f"Invalid distance from {leg.start.name} to {leg.end.name}: {leg.distance_miles!r}"
                )
            if leg.duration_hours is not None and (
                not _is_number(leg.duration_hours) or leg.duration_hours < 0
            ):
                raise InputValidationError(
                    f"Invalid drive time from {leg.start.name} to {leg.end.name}: {leg.duration_hours!r}"
                )


class _PlanningRun:
    """Mutable state of a single segmentation call."""

    def __init__(
        self,
        config: HOSConfig,
        current_cycle_used: float,
        start_time: datetime,
        legs: Sequence[RouteLeg]
    ):
        self.config = config
        self.clock = DutyClock(config, cycle_hours_used=current_cycle_used)
        self.initial_cycle_hours = current_cycle_used
        self.start_time = start_time
        self.now = start_time

        self.total_miles = sum(leg.distance_miles for leg in legs)
        self.miles = 0.0
        self.miles_since_fuel = 0.0

        self.segments: List[DutySegment] = []
        self.waypoints: List[Waypoint] = []
        self.violations: List[Violation] = []
        self.rest_periods: List[RestPeriod] = []
        self.fuel_stops = 0

        # Upper bound on loop iterations; each step drives, rests or fuels
        drive_hours = sum(self._drive_hours(leg) for leg in legs)
        fuel_marks = math.ceil(self.total_miles / config.fuel_interval_miles)
        self.max_steps = 100 + 10 * (fuel_marks + math.ceil(drive_hours) + len(legs))
        self.steps = 0

    def _drive_hours(self, leg: RouteLeg) -> float:
        return leg.distance_miles / self._speed(leg) if leg.distance_miles > 0 else 0.0

    def _speed(self, leg: RouteLeg) -> float:
        if leg.duration_hours:
            return leg.distance_miles / leg.duration_hours
        return self.config.average_speed_mph

    def _tick(self) -> None:
        self.steps += 1
        if self.steps > self.max_steps:
            raise SegmentationError(
                f"Segmentation did not converge after {self.max_steps} steps "
                f"({self.miles:.1f} of {self.total_miles:.1f} miles planned)"
            )

    # -- driving ---------------------------------------------------------

    def drive_leg(self, leg: RouteLeg) -> None:
        """Drive a whole leg, inserting fuel stops and rests as they fall due."""
        speed = self._speed(leg)
        interval = self.config.fuel_interval_miles
        remaining = leg.distance_miles
        covered = 0.0

        while remaining > 0:
            self._tick()

            if self.miles_since_fuel >= interval - MILES_EPSILON:
                self._fuel(self._place(leg, covered, "Fuel Station"))
                continue

            available = self.clock.remaining_driving_hours()
            if available <= EPSILON:
                self._rest(self.clock.binding_limit(), self._place(leg, covered, "Truck Stop"))
                continue

            by_time = available * speed
            to_fuel = interval - self.miles_since_fuel
            block = min(remaining, by_time, to_fuel)
            finished = remaining - block <= MILES_EPSILON
            if finished:
                block = remaining
            hours = min(block / speed, available)

            self._drive(block, hours, f"En route to {leg.end.name}")
            remaining = 0.0 if finished else remaining - block
            covered += block

    def _drive(self, miles: float, hours: float, location: str) -> None:
        hours = _quantize(hours)
        violation = self.clock.record_driving(hours)
        index = self._emit(DutyStatus.DRIVING, hours, location, f"Driving {miles:.1f} miles", miles)
        if violation:
            self._violate(violation, index)
        self.miles += miles
        self.miles_since_fuel += miles
        logger.debug(
            f"Drove {miles:.1f} miles, now at {self.miles:.1f} miles, "
            f"driving today: {self.clock.state.driving_hours_today:.1f}h"
        )

    # -- on-duty work ----------------------------------------------------

    def work_at(self, location: Location, hours: float, remarks: str) -> None:
        """On-duty (not driving) work at a stop, resting first if it would not fit."""
        hours = _quantize(hours)
        self._make_room_for_work(hours, location)
        violation = self.clock.record_on_duty(hours)
        index = self._emit(DutyStatus.ON_DUTY, hours, location.name, remarks)
        if violation:
            self._violate(violation, index)

    def _fuel(self, location: Location) -> None:
        hours = _quantize(self.config.fuel_stop_duration_hours)
        self._make_room_for_work(hours, location, top_off=False)
        self.add_waypoint(location, WaypointType.FUEL)
        violation = self.clock.record_on_duty(hours)
        index = self._emit(DutyStatus.ON_DUTY, hours, location.name, "Fuel stop")
        if violation:
            self._violate(violation, index)
        self.fuel_stops += 1
        self.miles_since_fuel = 0.0
        logger.debug(f"Added fuel stop at {self.miles:.1f} miles")

    def _make_room_for_work(self, hours: float, location: Location, top_off: bool = True) -> None:
        if self.clock.can_work(hours):
            return
        cycle_left = self.config.cycle_hours - self.clock.state.cycle_hours_used
        limit = 'cycle' if hours > cycle_left + EPSILON else 'on_duty'
        self._rest(limit, location, top_off=top_off)

    # -- rest ------------------------------------------------------------

    def _rest(self, limit: Optional[str], location: Location, top_off: bool = True) -> None:
        """Insert the off-duty period that clears ``limit``."""
        c = self.config
        if limit == 'break':
            self._off_duty(
                DutyStatus.OFF_DUTY, c.break_duration_hours, location, RestType.BREAK,
                f"30-minute break ({c.break_required_after_hours:g}-hour driving rule)"
            )
            return

        top_off_miles = c.fuel_top_off_at_rest_miles
        if (
            top_off
            and top_off_miles is not None
            and self.miles_since_fuel >= top_off_miles
            and self.clock.can_work(c.fuel_stop_duration_hours)
        ):
            self._fuel(location)

        if limit == 'cycle':
            self._restart(location)
            return

        reason = {
            'driving': f"{c.max_driving_hours:g}-hour driving limit",
            'on_duty': f"{c.max_on_duty_hours:g}-hour on-duty limit",
            'window': f"{c.max_on_duty_hours:g}-hour window limit",
        }.get(limit, "shift reset")
        self.add_waypoint(location, WaypointType.REST)
        self._off_duty(
            DutyStatus.SLEEPER, c.off_duty_reset_hours, location, RestType.SHIFT_RESET,
            f"{c.off_duty_reset_hours:g}-hour rest ({reason})"
        )
        logger.debug(f"Added rest stop at {self.miles:.1f} miles ({reason})")

    def _restart(self, location: Location) -> None:
        c = self.config
        left = self.total_miles - self.miles
        self.add_waypoint(location, WaypointType.REST)
        index = self._off_duty(
            DutyStatus.OFF_DUTY, c.restart_hours, location, RestType.RESTART,
            f"{c.restart_hours:g}-hour restart ({c.cycle_hours:g}-hour cycle exhausted)"
        )
        self._violate(Violation(
            rule_id='cycle-exhaustion',
            description=(
                f"{c.cycle_hours:g}-hour/{c.cycle_days}-day cycle exhausted at mile "
                f"{self.miles:.0f} with {left:.0f} miles still to drive; "
                f"{c.restart_hours:g}-hour restart inserted"
            )
        ), index)
        logger.debug(f"Applied {c.restart_hours:g}-hour restart at {self.miles:.1f} miles")

    def _off_duty(
        self,
        status: DutyStatus,
        hours: float,
        location: Location,
        rest_type: RestType,
        remarks: str
    ) -> int:
        hours = _quantize(hours)
        start = self.now
        index = self._emit(status, hours, location.name, remarks)
        self.clock.record_off_duty(hours)
        self.rest_periods.append(RestPeriod(start=start, end=self.now, rest_type=rest_type))
        return index

    # -- bookkeeping -----------------------------------------------------

    def _emit(
        self,
        status: DutyStatus,
        hours: float,
        location: str,
        remarks: str,
        miles: float = 0.0
    ) -> int:
        """Append a segment starting now; returns its index."""
        end = self.now + timedelta(hours=hours)
        if end > self.now or miles > 0:
            self.segments.append(DutySegment(
                status=status,
                start_time=self.now,
                end_time=end,
                location=location,
                distance_miles=miles,
                remarks=remarks
            ))
            self.now = end
        return len(self.segments) - 1

    def _violate(self, violation: Violation, index: int) -> None:
        occurred_at = self.segments[index].start_time if index >= 0 else self.now
        self.violations.append(violation.at(index, occurred_at))

    def _place(self, leg: RouteLeg, covered: float, kind: str) -> Location:
        lat, lng = leg.position_at(covered)
        return Location(name=f"{kind} at mile {self.miles:.0f}", latitude=lat, longitude=lng)

    def add_waypoint(self, location: Location, waypoint_type: WaypointType) -> None:
        self.waypoints.append(Waypoint(
            location=location,
            waypoint_type=waypoint_type,
            estimated_arrival=self.now,
            miles_from_start=self.miles
        ))

    def finish(self) -> SegmentPlan:
        return SegmentPlan(
            segments=self.segments,
            waypoints=self.waypoints,
            violations=self.violations,
            rest_periods=self.rest_periods,
            fuel_stops=self.fuel_stops,
            departure_time=self.start_time,
            arrival_time=self.now,
            final_state=self.clock.state,
            initial_cycle_hours=self.initial_cycle_hours
        )


def _quantize(hours: float) -> float:
    """Round a duration to the datetime resolution so clock and timestamps agree."""
    return timedelta(hours=hours).total_seconds() / 3600


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
