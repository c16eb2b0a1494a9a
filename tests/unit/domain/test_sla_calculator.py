"""
Tests for SLA deadline and state calculation.
"""
from datetime import timedelta

import pytest

from supportdesk.config import SLAState, TicketPriority
from supportdesk.sla.domain import SLACalculator, SLAPolicy

from tests.fixtures.support import START


class TestComputeDueDate:
    """Deadlines per priority."""

    @pytest.mark.parametrize(
        "priority,hours",
        [
            (TicketPriority.URGENT, 8),
            (TicketPriority.HIGH, 24),
            (TicketPriority.MEDIUM, 48),
            (TicketPriority.LOW, 72),
        ],
    )
    def test_due_date_is_start_plus_priority_hours(self, priority, hours):
        assert SLACalculator.compute_due_date(priority, START) == START + timedelta(hours=hours)

    def test_accepts_raw_priority_value(self):
        assert SLACalculator.compute_due_date("urgent", START) == START + timedelta(hours=8)

    def test_custom_hours_table(self):
        table = {p: 1 for p in TicketPriority}
        assert SLACalculator.compute_due_date(TicketPriority.LOW, START, table) == START + timedelta(hours=1)


class TestEvaluateStatus:
    """On track, at risk and breached."""

    def test_on_track_outside_risk_window(self):
        due = START + timedelta(hours=10)
        assert SLACalculator.evaluate_status(due, False, START) == SLAState.ON_TRACK

    def test_at_risk_inside_window(self):
        due = START + timedelta(hours=3)
        assert SLACalculator.evaluate_status(due, False, START) == SLAState.AT_RISK

    def test_at_risk_exactly_at_window_edge(self):
        due = START + timedelta(hours=4)
        assert SLACalculator.evaluate_status(due, False, START) == SLAState.AT_RISK

    def test_breached_at_deadline(self):
        assert SLACalculator.evaluate_status(START, False, START) == SLAState.BREACHED

    def test_persisted_flag_wins_over_time(self):
        due = START + timedelta(hours=40)
        assert SLACalculator.evaluate_status(due, True, START) == SLAState.BREACHED


class TestSLAPolicy:

    def test_from_settings_uses_risk_window(self, settings):
        settings.sla_risk_window_hours = 1
        policy = SLAPolicy.from_settings(settings)
        due = START + timedelta(hours=2)
        assert policy.risk_window == timedelta(hours=1)
        assert policy.status(due, False, START) == SLAState.ON_TRACK

    def test_due_date_uses_table(self):
        policy = SLAPolicy()
        assert policy.due_date(TicketPriority.HIGH, START) == START + timedelta(hours=24)
