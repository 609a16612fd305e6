# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for amendment chain resolution.
"""

from datetime import date

from gestao_contratos.domain.amendments import (
    active_amendment_status,
    order_amendments,
    resolve_end_dates
)
from gestao_contratos.models.entities import Amendment


class TestResolveEndDates:
    """Test confirmed and projected end dates."""

    def test_unconcluded_amendment_only_moves_projection(self, amendment_factory):
        amendments = [amendment_factory("a1", 1, "months", date(2024, 1, 10), concluded=False)]

        chain = resolve_end_dates(date(2024, 1, 31), amendments)

        assert chain.confirmed_end == date(2024, 1, 31)
        assert chain.projected_end == date(2024, 2, 29)
        assert chain.is_pending

    def test_concluded_amendments_apply_in_entry_order(self, amendment_factory):
        # Out of order on purpose: one month then one year, from Jan 31
        amendments = [
            amendment_factory("a1", 1, "years", date(2024, 3, 1), concluded=True),
            amendment_factory("a1", 1, "months", date(2024, 1, 5), concluded=True),
        ]

        chain = resolve_end_dates(date(2024, 1, 31), amendments)

        assert chain.confirmed_end == date(2025, 2, 28)
        assert chain.projected_end == chain.confirmed_end
        assert not chain.is_pending

    def test_unconcluded_amendment_is_skipped_in_place(self, amendment_factory):
        amendments = [
            amendment_factory("a1", 1, "months", date(2024, 1, 1), concluded=False),
            amendment_factory("a1", 30, "days", date(2024, 2, 1), concluded=True),
        ]

        chain = resolve_end_dates(date(2024, 1, 31), amendments)

        assert chain.confirmed_end == date(2024, 3, 1)
        assert chain.projected_end == date(2024, 3, 30)

    def test_value_amendments_are_ignored(self, amendment_factory):
        value_amendment = Amendment(agreement_id="a1", type="value", entry_date=date(2024, 1, 1))

        chain = resolve_end_dates(date(2024, 6, 30), [value_amendment])

        assert chain.confirmed_end == chain.projected_end == date(2024, 6, 30)

    def test_no_amendments(self):
        chain = resolve_end_dates(date(2024, 6, 30), [])
        assert chain.original_end == chain.confirmed_end == chain.projected_end


class TestOrdering:
    """Test amendment ordering and status."""

    def test_undated_amendments_go_last(self, amendment_factory):
        undated = amendment_factory("a1", 1, "months", None, concluded=False, event_name="SEM DATA")
        dated = amendment_factory("a1", 1, "months", date(2024, 1, 1), concluded=False, event_name="COM DATA")

        ordered = order_amendments([undated, dated])

        assert [a.event_name for a in ordered] == ["COM DATA", "SEM DATA"]

    def test_active_amendment_status_skips_closed(self, amendment_factory):
        amendments = [
            amendment_factory("a1", 1, "months", date(2024, 1, 1), concluded=True, status="concluído"),
            amendment_factory("a1", 1, "months", date(2024, 2, 1), concluded=False, status="cancelado"),
            amendment_factory("a1", 1, "months", date(2024, 3, 1), concluded=False, status="Na PGM"),
        ]

        assert active_amendment_status(amendments) == "NA PGM"

    def test_no_active_amendment(self, amendment_factory):
        amendments = [amendment_factory("a1", 1, "months", date(2024, 1, 1), concluded=True, status="CONCLUÍDO")]
        assert active_amendment_status(amendments) is None


class TestAmendmentModel:
    """Test amendment model rules."""

    def test_portuguese_unit_is_normalized(self):
        amendment = Amendment(agreement_id="a1", type="term", duration=12, duration_unit="meses")
        assert amendment.duration_unit == "months"

    def test_null_checklist_is_not_concluded(self):
        amendment = Amendment(agreement_id="a1", type="term", duration=12, duration_unit="mes", checklist=None)
        assert not amendment.is_concluded()
