"""
ELD (Electronic Logging Device) Log Generator Service.

Folds a trip's duty segments into one daily log sheet per calendar day.

ELD Log Format:
==============
Each day's log lists the duty-status changes that happened on that date:
- Time the status started (HH:MM, 24-hour)
- Duty status (Off Duty, Driving, On Duty Not Driving)
- Location / remarks

A segment that runs past midnight is split at the boundary and each part
is reported on its own day. Daily totals are the sum of the day's entries.
Sleeper berth time is reported as off duty on the sheet and counted as rest.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from .hos_service import DutyClock, DutyStatus, HOSConfig, Violation
from .segment_service import DutySegment, SegmentPlan

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """
    Single entry on a daily log.

    Represents the part of one duty segment that falls on a single date.
    """
    start_time: datetime
    end_time: datetime
    status: DutyStatus
    location: str
    remarks: str = ""
    distance_miles: float = 0.0
    segment_index: int = 0

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def label(self) -> str:
        if self.status == DutyStatus.DRIVING or not self.remarks:
            return self.location
        return f"{self.location} - {self.remarks}"

    def to_dict(self) -> Dict:
        return {
            'time': self.start_time.strftime('%H:%M'),
            'status': ELDLogService.STATUS_LABELS[self.status],
            'location': self.label,
        }


@dataclass
class DailyLog:
    """
    Complete ELD log for a single day.

    Totals are computed from the entries, so they always match them.
    """
    log_date: date
    day_number: int
    entries: List[LogEntry] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)

    def _hours(self, *statuses: DutyStatus) -> float:
        return sum(e.duration_hours for e in self.entries if e.status in statuses)

    @property
    def driving_time(self) -> float:
        return self._hours(DutyStatus.DRIVING)

    @property
    def on_duty_time(self) -> float:
        return self._hours(DutyStatus.ON_DUTY)

    @property
    def rest_time(self) -> float:
        return self._hours(DutyStatus.OFF_DUTY, DutyStatus.SLEEPER)

    @property
    def total_hours(self) -> float:
        return sum(e.duration_hours for e in self.entries)

    @property
    def total_miles(self) -> float:
        return sum(e.distance_miles for e in self.entries)

    def to_dict(self) -> Dict:
        return {
            'date': self.log_date.isoformat(),
            'drivingTime': round(self.driving_time, 2),
            'onDutyTime': round(self.on_duty_time, 2),
            'restTime': round(self.rest_time, 2),
            'violations': [str(v) for v in self.violations],
            'entries': [e.to_dict() for e in self.entries],
        }


class ELDLogService:
    """
    Service for generating ELD daily log sheets.

    Takes the segmenter's plan and produces one DailyLog per calendar
    date the trip touches, with violations attached to the day they
    occurred on.
    """

    # Sheet status for each duty status
    STATUS_LABELS = {
        DutyStatus.DRIVING: 'driving',
        DutyStatus.ON_DUTY: 'on-duty',
        DutyStatus.OFF_DUTY: 'off-duty',
        DutyStatus.SLEEPER: 'off-duty',
    }

    def __init__(self, config: Optional[HOSConfig] = None):
        self.config = config or HOSConfig()

    def generate_logs(self, plan: SegmentPlan) -> List[DailyLog]:
        """
        Generate ELD daily logs from a segment plan.

        Args:
            plan: Complete plan from TripSegmenter

        Returns:
            List of DailyLog objects, one per calendar day, in date order
        """
        logs: Dict[date, DailyLog] = OrderedDict()

        for index, segment in enumerate(plan.segments):
            for entry in self._split_at_midnight(segment, index):
                day = entry.start_time.date()
                if day not in logs:
                    logs[day] = DailyLog(log_date=day, day_number=len(logs) + 1)
                logs[day].entries.append(entry)

        if not logs:
            day = plan.departure_time.date()
            logs[day] = DailyLog(log_date=day, day_number=1)

        daily_logs = list(logs.values())
        violations = self._merge_violations(
            plan.violations,
            self.audit_segments(plan.segments, plan.initial_cycle_hours)
        )
        for violation in violations:
            self._log_for(daily_logs, violation.occurred_at).violations.append(violation)

        logger.info(
            f"Generated {len(daily_logs)} daily ELD logs "
            f"with {len(violations)} violations"
        )
        return daily_logs

    def generate_logs_json(self, plan: SegmentPlan) -> List[Dict]:
        """
        Generate ELD logs and return as JSON-serializable dictionaries.

        This is the main method for API responses.
        """
        return [log.to_dict() for log in self.generate_logs(plan)]

    def audit_segments(
        self,
        segments: List[DutySegment],
        initial_cycle_hours: float = 0.0
    ) -> List[Violation]:
        """
        Replay segments through a fresh duty clock and report any breach.

        A plan produced by TripSegmenter replays cleanly unless the
        segmenter itself had to accept a rejected mutation.
        """
        clock = DutyClock(self.config, cycle_hours_used=initial_cycle_hours)
        violations = []

        for index, segment in enumerate(segments):
            hours = segment.duration_hours
            if segment.status == DutyStatus.DRIVING:
                violation = clock.record_driving(hours)
            elif segment.status == DutyStatus.ON_DUTY:
                violation = clock.record_on_duty(hours)
            else:
                clock.record_off_duty(hours)
                violation = None

            if violation:
                violations.append(violation.at(index, segment.start_time))

        return violations

    def _split_at_midnight(self, segment: DutySegment, index: int) -> List[LogEntry]:
        """Split a segment into per-day entries, apportioning miles by time."""
        if segment.end_time <= segment.start_time:
            return [self._entry(segment, index, segment.start_time, segment.end_time,
                                segment.distance_miles)]

        total_seconds = (segment.end_time - segment.start_time).total_seconds()
        entries = []
        assigned = 0.0
        cursor = segment.start_time

        while cursor < segment.end_time:
            next_midnight = datetime.combine(
                cursor.date() + timedelta(days=1), time.min, tzinfo=cursor.tzinfo
            )
            piece_end = min(segment.end_time, next_midnight)
            if piece_end == segment.end_time:
                miles = segment.distance_miles - assigned
            else:
                share = (piece_end - cursor).total_seconds() / total_seconds
                miles = segment.distance_miles * share
            assigned += miles
            entries.append(self._entry(segment, index, cursor, piece_end, miles))
            cursor = piece_end

        return entries

    def _entry(
        self,
        segment: DutySegment,
        index: int,
        start: datetime,
        end: datetime,
        miles: float
    ) -> LogEntry:
        return LogEntry(
            start_time=start,
            end_time=end,
            status=segment.status,
            location=segment.location,
            remarks=segment.remarks,
            distance_miles=miles,
            segment_index=index
        )

    def _merge_violations(
        self,
        planned: List[Violation],
        audited: List[Violation]
    ) -> List[Violation]:
        """Combine planner and audit violations, dropping duplicates."""
        seen = set()
        merged = []
        for violation in planned + audited:
            key = (violation.rule_id, violation.segment_reference)
            if key in seen:
                continue
            seen.add(key)
            merged.append(violation)
        return merged

    def _log_for(self, logs: List[DailyLog], moment: Optional[datetime]) -> DailyLog:
        """DailyLog covering ``moment``, clamped to the trip's first/last day."""
        if moment is None:
            return logs[-1]
        day = moment.date()
        for log in logs:
            if log.log_date == day:
                return log
        return logs[0] if day < logs[0].log_date else logs[-1]
