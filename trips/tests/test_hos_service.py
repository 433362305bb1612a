"""
Tests for the FMCSA Hours of Service (HOS) duty clock.

Tests the duty-hour bookkeeping to ensure compliance with FMCSA regulations.
"""

import math
from datetime import datetime

import pytest
from django.test import override_settings

from trips.services.hos_service import DutyClock, DutyState, HOSConfig, Violation


class TestHOSConfig:
    """Test HOS configuration defaults."""

    def test_default_config(self):
        """Test default HOS configuration values."""
        config = HOSConfig()

        assert config.cycle_days == 8
        assert config.cycle_hours == 70.0
        assert config.max_driving_hours == 11.0
        assert config.max_on_duty_hours == 14.0
        assert config.break_required_after_hours == 8.0
        assert config.break_duration_hours == 0.5
        assert config.off_duty_reset_hours == 10.0
        assert config.restart_hours == 34.0
        assert config.fuel_interval_miles == 1000.0
        assert config.pickup_duration_hours == 1.0
        assert config.dropoff_duration_hours == 1.0

    def test_from_settings_applies_overrides(self):
        with override_settings(HOS_CONFIG={'max_driving_hours': 10.0, 'not_a_rule': 1}):
            config = HOSConfig.from_settings()

        assert config.max_driving_hours == 10.0
        assert config.max_on_duty_hours == 14.0

    def test_to_dict_lists_every_rule(self):
        data = HOSConfig().to_dict()

        assert data['cycle_hours'] == 70.0
        assert data['fuel_interval_miles'] == 1000.0
        assert 'average_speed_mph' in data


class TestDutyClock:
    """Test duty clock counters and limit enforcement."""

    def setup_method(self):
        self.clock = DutyClock()

    def test_fresh_clock_is_limited_by_break_rule(self):
        # 8h until the 30-minute break is due, before 11h driving
        assert self.clock.remaining_driving_hours() == pytest.approx(8.0)
        assert self.clock.binding_limit() is None

    def test_record_driving_updates_all_counters(self):
        assert self.clock.record_driving(5.0) is None

        state = self.clock.state
        assert state.driving_hours_today == 5.0
        assert state.on_duty_hours_today == 5.0
        assert state.cycle_hours_used == 5.0
        assert state.hours_since_last_off_duty_block == 5.0
        assert state.driving_since_break == 5.0

    def test_record_on_duty_does_not_count_as_driving(self):
        assert self.clock.record_on_duty(1.0) is None

        state = self.clock.state
        assert state.driving_hours_today == 0.0
        assert state.driving_since_break == 0.0
        assert state.on_duty_hours_today == 1.0
        assert state.cycle_hours_used == 1.0

    def test_state_is_a_copy(self):
        state = self.clock.state
        state.driving_hours_today = 99

        assert self.clock.state.driving_hours_today == 0.0

    def test_driving_past_break_rule_is_rejected(self):
        violation = self.clock.record_driving(9.0)

        assert isinstance(violation, Violation)
        assert violation.rule_id == 'break-required'
        # Rejected mutations leave the state untouched
        assert self.clock.state == DutyState()

    def test_driving_past_eleven_hours_is_rejected(self):
        violation = self.clock.record_driving(12.0)

        assert violation.rule_id == 'driving-limit'
        assert self.clock.state.driving_hours_today == 0.0

    def test_driving_past_cycle_is_rejected(self):
        clock = DutyClock(cycle_hours_used=65.0)

        violation = clock.record_driving(6.0)

        assert violation.rule_id == 'cycle-limit'
        assert clock.state.cycle_hours_used == 65.0

    def test_work_past_fourteen_hours_is_rejected(self):
        violation = self.clock.record_on_duty(15.0)

        assert violation.rule_id == 'on-duty-limit'

    def test_can_drive_exactly_to_the_limit(self):
        assert self.clock.can_drive(8.0)
        assert not self.clock.can_drive(8.01)

    def test_short_break_resets_break_counter_only(self):
        self.clock.record_driving(8.0)
        assert self.clock.binding_limit() == 'break'

        self.clock.record_off_duty(0.5)

        state = self.clock.state
        assert state.driving_since_break == 0.0
        assert state.driving_hours_today == 8.0
        assert state.hours_since_last_off_duty_block == 8.5
        assert self.clock.remaining_driving_hours() == pytest.approx(3.0)

    def test_eleven_hours_driving_binds_driving_limit(self):
        self.clock.record_driving(8.0)
        self.clock.record_off_duty(0.5)
        self.clock.record_driving(3.0)

        assert self.clock.binding_limit() == 'driving'
        assert not self.clock.can_drive(0.1)

    def test_window_limit_binds_after_long_on_duty(self):
        self.clock.record_on_duty(6.0)
        self.clock.record_driving(8.0)

        # 14 hours on duty: both the on-duty and window counters are spent
        assert self.clock.remaining_driving_hours() == 0.0
        assert self.clock.binding_limit() == 'on_duty'

    def test_ten_hour_rest_keeps_cycle(self):
        self.clock.record_driving(8.0)
        self.clock.record_on_duty(2.0)

        self.clock.record_off_duty(10.0)

        state = self.clock.state
        assert state.driving_hours_today == 0.0
        assert state.on_duty_hours_today == 0.0
        assert state.hours_since_last_off_duty_block == 0.0
        assert state.cycle_hours_used == 10.0

    def test_thirty_four_hour_restart_resets_cycle(self):
        clock = DutyClock(cycle_hours_used=70.0)
        assert clock.binding_limit() == 'cycle'

        clock.record_off_duty(34.0)

        assert clock.state == DutyState()
        assert clock.remaining_driving_hours() == pytest.approx(8.0)

    def test_remaining_work_hours_bounded_by_cycle(self):
        clock = DutyClock(cycle_hours_used=69.5)

        assert clock.remaining_work_hours() == pytest.approx(0.5)
        assert clock.can_work(0.5)
        assert not clock.can_work(1.0)

    def test_negative_hours_rejected(self):
        with pytest.raises(ValueError):
            self.clock.record_driving(-1.0)
        with pytest.raises(ValueError):
            self.clock.record_off_duty(math.nan)


class TestViolation:

    def test_at_anchors_copy(self):
        violation = Violation(rule_id='driving-limit', description='too long')
        when = datetime(2024, 1, 15, 18, 0)

        anchored = violation.at(3, when)

        assert anchored.segment_reference == 3
        assert anchored.occurred_at == when
        assert violation.segment_reference is None

    def test_str(self):
        violation = Violation(rule_id='cycle-exhaustion', description='restart inserted')

        assert str(violation) == 'cycle-exhaustion: restart inserted'
