# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for lifecycle status and renewal advisories.
"""

import pytest
from datetime import date, timedelta

from gestao_contratos.domain.lifecycle import compute_days_remaining, derive_status, is_active
from gestao_contratos.domain.renewal import assess_renewal, renewal_limit
from gestao_contratos.models.enums import LifecycleStatus, ManualStatus, RenewalOutcome

TODAY = date(2024, 6, 15)
START = date(2023, 1, 1)


class TestDeriveStatus:
    """Test status derivation from the effective end date."""

    @pytest.mark.parametrize("offset,expected", [
        (-1, LifecycleStatus.EXPIRED),
        (0, LifecycleStatus.WARNING),
        (30, LifecycleStatus.WARNING),
        (31, LifecycleStatus.ACTIVE),
    ])
    def test_status_by_days_remaining(self, offset, expected):
        end = TODAY + timedelta(days=offset)
        assert derive_status(START, end, ManualStatus.AUTOMATIC, TODAY) == expected

    @pytest.mark.parametrize("manual,expected", [
        (ManualStatus.EXECUTED, LifecycleStatus.EXECUTED),
        ("rescinded", LifecycleStatus.RESCINDED),
    ])
    def test_manual_override_wins(self, manual, expected):
        # Would otherwise be active and expired respectively
        assert derive_status(START, TODAY + timedelta(days=400), manual, TODAY) == expected
        assert derive_status(START, TODAY - timedelta(days=400), manual, TODAY) == expected

    def test_missing_override_is_automatic(self):
        assert derive_status(START, TODAY + timedelta(days=90), None, TODAY) == LifecycleStatus.ACTIVE

    def test_status_metadata(self):
        assert LifecycleStatus.WARNING.metadata.label == "A VENCER"
        assert LifecycleStatus.EXPIRED.metadata.tone == "red"


class TestDaysRemaining:
    """Test days remaining."""

    def test_days_remaining_when_active(self):
        end = TODAY + timedelta(days=45)
        assert compute_days_remaining(end, LifecycleStatus.ACTIVE, TODAY) == 45

    @pytest.mark.parametrize("status", ["expired", "executed", "rescinded"])
    def test_terminal_status_has_no_days_remaining(self, status):
        assert compute_days_remaining(TODAY + timedelta(days=10), status, TODAY) is None

    def test_is_active(self):
        assert is_active(LifecycleStatus.WARNING)
        assert not is_active("executed")


class TestRenewal:
    """Test renewal limits."""

    def test_standard_limit_with_one_month_left(self):
        advisory = assess_renewal(date(2019, 1, 1), date(2023, 12, 1), is_emergency=False)

        assert advisory.months_elapsed == 59
        assert advisory.limit == 60
        assert advisory.remaining == 1
        assert advisory.outcome == RenewalOutcome.AVAILABLE
        assert "AINDA PODE RENOVAR POR MAIS 1 MESES" in advisory.message

    def test_extended_limit_after_sixty_months(self):
        advisory = assess_renewal(date(2019, 1, 1), date(2024, 1, 1), is_emergency=False)

        assert advisory.months_elapsed == 60
        assert advisory.limit == 120
        assert advisory.remaining == 60

    def test_emergency_exceeded(self):
        advisory = assess_renewal(date(2023, 1, 1), date(2024, 2, 1), is_emergency=True)

        assert advisory.months_elapsed == 13
        assert advisory.limit == 12
        assert advisory.remaining == -1
        assert advisory.outcome == RenewalOutcome.EXCEEDED
        assert "EXCEDE" in advisory.message

    def test_emergency_limit_reached(self):
        advisory = assess_renewal(date(2023, 1, 1), date(2024, 1, 1), is_emergency=True)

        assert advisory.remaining == 0
        assert advisory.outcome == RenewalOutcome.LIMIT_REACHED
        assert advisory.message == "LIMITE DE 12 MESES ATINGIDO."

    def test_renewal_limit_table(self):
        assert renewal_limit(0, is_emergency=False) == 60
        assert renewal_limit(59, is_emergency=False) == 60
        assert renewal_limit(60, is_emergency=False) == 120
        assert renewal_limit(100, is_emergency=True) == 12
