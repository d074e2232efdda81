"""
Daily Sequence Number Tests

Tests for order and tab numbering, including numbers that outgrow their
zero-padded width.
"""
import pytest

from core_backend.utils.sequences import daily_prefix, next_daily_number
from tabs.models import OrderSession
from tabs.services import TabService


@pytest.mark.django_db
class TestDailyNumbers:

    def test_first_number_of_the_day(self):
        assert next_daily_number(OrderSession, "session_number", "TAB", 3) == f"{daily_prefix('TAB')}001"

    def test_numbers_past_the_padding_width(self):
        """
        CRITICAL: Verify the next number follows the numeric maximum, not the
        text order of the stored values.

        Scenario:
        - TAB-<today>-999 and TAB-<today>-1000 already exist
        - Expected: the next tab gets 1001 instead of colliding on 1000
        """
        stem = daily_prefix("TAB")
        OrderSession.objects.create(session_number=f"{stem}999")
        OrderSession.objects.create(session_number=f"{stem}1000")

        session = TabService.open_tab()

        assert session.session_number == f"{stem}1001"

    def test_other_days_are_ignored(self):
        OrderSession.objects.create(session_number="TAB-19990101-042")

        assert next_daily_number(OrderSession, "session_number", "TAB", 3).endswith("-001")
