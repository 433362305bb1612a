"""
FMCSA Hours of Service (HOS) duty clock.

Implements the duty-hour bookkeeping for property-carrying drivers
(truckers) used by the trip segmenter.

FMCSA HOS Rules Implemented:
============================
1. 70-Hour/8-Day Rule: Max 70 hours on-duty in any 8 consecutive days
2. 11-Hour Driving Limit: Max 11 hours driving after 10 consecutive hours off-duty
3. 14-Hour On-Duty Window: Cannot drive beyond 14th hour after coming on-duty
4. 30-Minute Break: Required after 8 hours of cumulative driving
5. 10-Hour Off-Duty: Required before a new driving period
6. 34-Hour Restart: Resets the 70-hour/8-day cycle

The sleeper berth split (7/3 or 8/2) is not modeled: only a contiguous
off-duty block of at least 10 hours starts a new shift.

References:
- https://www.fmcsa.dot.gov/regulations/hours-of-service
"""

import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Tolerance for float comparisons against regulatory limits
EPSILON = 1e-9


class DutyStatus(Enum):
    """Driver duty status as defined by FMCSA."""
    OFF_DUTY = "off_duty"
    SLEEPER = "sleeper"
    DRIVING = "driving"
    ON_DUTY = "on_duty"


@dataclass
class HOSConfig:
    """
    Configuration for HOS rules.
    All values can be adjusted for different regulations or testing.
    """
    # Cycle limits
    cycle_days: int = 8
    cycle_hours: float = 70.0

    # Daily limits
    max_driving_hours: float = 11.0
    max_on_duty_hours: float = 14.0

    # Break requirements
    break_required_after_hours: float = 8.0
    break_duration_hours: float = 0.5  # 30 minutes

    # Reset requirements
    off_duty_reset_hours: float = 10.0
    restart_hours: float = 34.0

    # Practical stops
    fuel_interval_miles: float = 1000.0
    fuel_stop_duration_hours: float = 0.5  # 30 minutes
    fuel_top_off_at_rest_miles: Optional[float] = 500.0

    # Loading/unloading
    pickup_duration_hours: float = 1.0
    dropoff_duration_hours: float = 1.0

    # Used when the distance provider returns no drive time for a leg
    average_speed_mph: float = 55.0

    @classmethod
    def from_settings(cls) -> 'HOSConfig':
        """Build a config from Django's HOS_CONFIG setting, if any."""
        from django.conf import settings

        overrides = getattr(settings, 'HOS_CONFIG', None) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            logger.warning(f"Ignoring unknown HOS_CONFIG keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in overrides.items() if k in known})

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class Violation:
    """
    A recorded HOS rule breach.

    Violations never abort planning; they are attached to the daily log
    covering ``occurred_at``.
    """
    rule_id: str
    description: str
    segment_reference: Optional[int] = None
    occurred_at: Optional[datetime] = None

    def at(self, segment_reference: int, occurred_at: datetime) -> 'Violation':
        """Return a copy anchored to a segment and timestamp."""
        return replace(
            self,
            segment_reference=segment_reference,
            occurred_at=occurred_at
        )

    def __str__(self) -> str:
        return f"{self.rule_id}: {self.description}"


@dataclass
class DutyState:
    """Rolling duty-hour counters for one driver during one planning run."""
    driving_hours_today: float = 0.0
    on_duty_hours_today: float = 0.0
    cycle_hours_used: float = 0.0
    hours_since_last_off_duty_block: float = 0.0
    driving_since_break: float = 0.0


class DutyClock:
    """
    Tracks a driver's duty state and enforces HOS limits on every mutation.

    A mutation that would push a counter past its limit is rejected: the
    state is left untouched and a ``Violation`` describing the breach is
    returned. Callers are expected to check ``can_drive`` / ``can_work``
    first.
    """

    LIMIT_ORDER = ('cycle', 'driving', 'on_duty', 'window', 'break')

    def __init__(self, config: Optional[HOSConfig] = None, cycle_hours_used: float = 0.0):
        self.config = config or HOSConfig()
        self._state = DutyState(cycle_hours_used=cycle_hours_used)

    @property
    def state(self) -> DutyState:
        return replace(self._state)

    def _headroom(self) -> Dict[str, float]:
        """Hours left under each rule before it is exhausted."""
        s = self._state
        c = self.config
        return {
            'cycle': c.cycle_hours - s.cycle_hours_used,
            'driving': c.max_driving_hours - s.driving_hours_today,
            'on_duty': c.max_on_duty_hours - s.on_duty_hours_today,
            'window': c.max_on_duty_hours - s.hours_since_last_off_duty_block,
            'break': c.break_required_after_hours - s.driving_since_break,
        }

    def remaining_driving_hours(self) -> float:
        """Longest driving period that can legally start now."""
        return max(0.0, min(self._headroom().values()))

    def remaining_work_hours(self) -> float:
        """Longest on-duty (not driving) period that fits now."""
        headroom = self._headroom()
        return max(0.0, min(headroom['on_duty'], headroom['cycle']))

    def binding_limit(self) -> Optional[str]:
        """Name of the exhausted rule that blocks driving, cycle first."""
        headroom = self._headroom()
        for name in self.LIMIT_ORDER:
            if headroom[name] <= EPSILON:
                return name
        return None

    def can_drive(self, hours: float) -> bool:
        return hours <= self.remaining_driving_hours() + EPSILON

    def can_work(self, hours: float) -> bool:
        return hours <= self.remaining_work_hours() + EPSILON

    def record_driving(self, hours: float) -> Optional[Violation]:
        """Add a driving period. Returns a Violation if it was rejected."""
        _check_hours(hours)
        if not self.can_drive(hours):
            return self._rejection(hours, self._exceeded(hours, driving=True), 'driving')

        s = self._state
        s.driving_hours_today += hours
        s.on_duty_hours_today += hours
        s.cycle_hours_used += hours
        s.hours_since_last_off_duty_block += hours
        s.driving_since_break += hours
        return None

    def record_on_duty(self, hours: float) -> Optional[Violation]:
        """Add an on-duty (not driving) period. Returns a Violation if rejected."""
        _check_hours(hours)
        if not self.can_work(hours):
            return self._rejection(hours, self._exceeded(hours, driving=False), 'on-duty work')

        s = self._state
        s.on_duty_hours_today += hours
        s.cycle_hours_used += hours
        s.hours_since_last_off_duty_block += hours
        return None

    def record_off_duty(self, hours: float) -> None:
        """
        Add an off-duty period.

        34+ hours restarts the cycle, 10+ hours starts a new shift, a
        30-minute interruption satisfies the break rule. Anything shorter
        only consumes the 14-hour window.
        """
        _check_hours(hours)
        c = self.config
        s = self._state

        if hours >= c.restart_hours - EPSILON:
            self._state = DutyState()
            logger.debug(f"{hours:.1f}h off duty: cycle restarted")
        elif hours >= c.off_duty_reset_hours - EPSILON:
            self._state = DutyState(cycle_hours_used=s.cycle_hours_used)
            logger.debug(f"{hours:.1f}h off duty: new shift")
        else:
            s.hours_since_last_off_duty_block += hours
            if hours >= c.break_duration_hours - EPSILON:
                s.driving_since_break = 0.0

    def _exceeded(self, hours: float, driving: bool) -> str:
        headroom = self._headroom()
        names = self.LIMIT_ORDER if driving else ('cycle', 'on_duty')
        for name in names:
            if hours > headroom[name] + EPSILON:
                return name
        return names[0]

    def _rejection(self, hours: float, rule: str, activity: str) -> Violation:
        c = self.config
        messages = {
            'cycle': ('cycle-limit', f"{c.cycle_hours:g}-hour/{c.cycle_days}-day cycle"),
            'driving': ('driving-limit', f"{c.max_driving_hours:g}-hour driving limit"),
            'on_duty': ('on-duty-limit', f"{c.max_on_duty_hours:g}-hour on-duty limit"),
            'window': ('window-limit', f"{c.max_on_duty_hours:g}-hour duty window"),
            'break': ('break-required', f"30-minute break after {c.break_required_after_hours:g}h driving"),
        }
        rule_id, limit = messages[rule]
        violation = Violation(
            rule_id=rule_id,
            description=f"{hours:.2f}h of {activity} would exceed the {limit}"
        )
        logger.warning(f"Duty clock rejected {activity}: {violation}")
        return violation


def _check_hours(hours: float) -> None:
    if not hours >= 0:
        raise ValueError(f"Duty period must be a non-negative number of hours, got {hours!r}")
