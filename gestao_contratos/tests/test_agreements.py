# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the agreement read model and expiry alerts.
"""

import pytest
from datetime import date, timedelta

from gestao_contratos.domain.agreements import (
    build_agreement_collection_hal_response,
    build_agreement_hal_response,
    build_agreement_view
)
from gestao_contratos.domain.alerts import (
    DEFAULT_ALERT_THRESHOLDS,
    parse_thresholds,
    pending_expiry_alerts
)
from gestao_contratos.models.enums import LifecycleStatus

TODAY = date(2024, 6, 15)


class TestAgreementView:
    """Test derived agreement fields."""

    def test_status_uses_confirmed_end(self, agreement, amendment_factory):
        agreement.end_date = TODAY + timedelta(days=10)
        pending = amendment_factory(agreement.id, 1, "years", date(2024, 5, 1), concluded=False)

        view = build_agreement_view(agreement, [pending], TODAY)

        assert view.status == LifecycleStatus.WARNING
        assert view.days_remaining == 10
        assert view.effective_end == agreement.end_date
        assert view.chain.projected_end == date(2025, 6, 25)
        assert view.amendment_status == "ELABORANDO"

    def test_renewal_uses_projected_end(self, agreement, amendment_factory):
        agreement.start_date = date(2019, 1, 1)
        agreement.end_date = date(2023, 1, 1)
        amendments = [
            amendment_factory(agreement.id, 11, "months", date(2023, 1, 1), concluded=False),
        ]

        view = build_agreement_view(agreement, amendments, TODAY)

        assert view.status == LifecycleStatus.EXPIRED
        assert view.days_remaining is None
        assert view.renewal.months_elapsed == 59
        assert view.renewal.remaining == 1

    def test_manual_override(self, agreement):
        agreement.manual_status = "rescinded"

        view = build_agreement_view(agreement, [], TODAY)

        assert view.status == LifecycleStatus.RESCINDED
        assert view.days_remaining is None
        assert not view.is_active


class TestAgreementHalResponse:
    """Test HAL rendering of agreements."""

    def test_response_fields_and_links(self, agreement, amendment_factory, technical_user):
        pending = amendment_factory(agreement.id, 1, "months", date(2024, 5, 1), concluded=False)
        view = build_agreement_view(agreement, [pending], TODAY)

        response = build_agreement_hal_response(view, technical_user, "https://api.test")

        assert response["confirmed_end_date"] == "2024-12-31"
        assert response["projected_end_date"] == "2025-01-31"
        assert response["end_date_display"] == "31/12/2024"
        assert response["amendment_pending"] is True
        assert response["status_label"] == "VIGENTE"
        assert response["renewal"]["limit"] == 60
        assert response["_links"]["reports"]["href"] == f"https://api.test/api/agreements/{agreement.id}/reports"
        assert "edit" not in response["_links"]

    def test_edit_link_with_permission(self, agreement, manager_user):
        view = build_agreement_view(agreement, [], TODAY)

        response = build_agreement_hal_response(view, manager_user, "https://api.test")

        assert response["_links"]["edit"]["method"] == "PUT"

    def test_administrative_overseer_hidden_when_not_required(self, agreement_without_admin, technical_user):
        view = build_agreement_view(agreement_without_admin, [], TODAY)

        response = build_agreement_hal_response(view, technical_user, "https://api.test")

        assert response["administrative_overseer"] is None

    def test_collection(self, agreement, technical_user):
        views = [build_agreement_view(agreement, [], TODAY)]

        response = build_agreement_collection_hal_response(views, technical_user, "https://api.test")

        assert response["total"] == 1
        assert response["_links"]["self"]["href"] == "https://api.test/api/agreements"
        assert response["_embedded"]["agreements"][0]["identifier"] == "80/2018"


class TestExpiryAlerts:
    """Test threshold alerts."""

    def _view(self, agreement, days, **changes):
        changed = agreement.model_copy(update={"end_date": TODAY + timedelta(days=days), **changes})
        return build_agreement_view(changed, [], TODAY)

    def test_alert_on_threshold_days_only(self, agreement):
        views = [self._view(agreement, days, identifier=f"{days}/2024") for days in (7, 8, 30, 90, 91)]

        alerts = pending_expiry_alerts(views, DEFAULT_ALERT_THRESHOLDS)

        assert [alert.days_remaining for alert in alerts] == [7, 30, 90]
        assert alerts[0].identifier == "7/2024"
        assert alerts[0].end_date == TODAY + timedelta(days=7)

    def test_overridden_agreements_never_alert(self, agreement):
        views = [self._view(agreement, 30, manual_status="executed")]
        assert pending_expiry_alerts(views, DEFAULT_ALERT_THRESHOLDS) == []

    def test_parse_thresholds(self):
        assert parse_thresholds("30, 90,30,7") == (90, 30, 7)
        assert parse_thresholds("") == DEFAULT_ALERT_THRESHOLDS
        assert parse_thresholds(None) == DEFAULT_ALERT_THRESHOLDS

    @pytest.mark.parametrize("value", ["0", "-5", "abc"])
    def test_parse_invalid_thresholds(self, value):
        with pytest.raises(ValueError):
            parse_thresholds(value)
