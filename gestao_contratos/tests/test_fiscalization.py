# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the fiscalization report workflow.
"""

import pytest
from datetime import date

from gestao_contratos.domain import fiscalization
from gestao_contratos.domain.errors import (
    InvalidReferenceMonthError,
    OutOfTurnError,
    ReauthenticationError,
    ReportCompletedError,
    ReportLockedError
)
from gestao_contratos.models.entities import FiscalizationReport
from gestao_contratos.models.enums import SignerRole, WorkflowStatus, WorkflowVariant


class TestCreateReport:
    """Test report creation."""

    def test_report_with_administrative_step(self, agreement, technical_user):
        report = fiscalization.create_report(agreement, "2024-05", technical_user)

        assert report.status == WorkflowStatus.PENDING_TECHNICAL
        assert report.workflow == WorkflowVariant.WITH_ADMINISTRATIVE_STEP
        assert report.technical_name == agreement.technical_overseer
        assert report.administrative_name == agreement.administrative_overseer
        assert report.manager_name == agreement.manager
        assert report.created_by == technical_user.user_id
        assert report.content.template == "continuous_service"

    def test_report_without_administrative_step(self, agreement_without_admin, technical_user):
        report = fiscalization.create_report(agreement_without_admin, "2024-05", technical_user)

        assert report.status == WorkflowStatus.PENDING_MANAGER
        assert report.workflow == WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP
        assert report.administrative_name is None

    def test_flag_without_name_skips_administrative_step(self, agreement, technical_user):
        unnamed = agreement.model_copy(update={"administrative_overseer": "  "})
        assert fiscalization.choose_workflow_variant(unnamed) == WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP

    def test_invalid_reference_month(self, agreement, technical_user):
        with pytest.raises(InvalidReferenceMonthError):
            fiscalization.create_report(agreement, "2024-13", technical_user)

    def test_variant_survives_agreement_changes(self, agreement, technical_user, administrative_user,
                                                 manager_user, verifier):
        report = fiscalization.create_report(agreement, "2024-05", technical_user)
        # The agreement drops its administrative overseer after the report exists
        agreement.has_administrative_overseer = False

        report = fiscalization.sign_report(report, "technical", "senha-correta", technical_user, verifier)

        assert report.status == WorkflowStatus.PENDING_ADMINISTRATIVE


class TestSignReport:
    """Test signing order and re-authentication."""

    def test_full_sequence(self, report, technical_user, administrative_user, manager_user, verifier, signed_at):
        report = fiscalization.sign_report(report, SignerRole.TECHNICAL, "senha-correta", technical_user,
                                           verifier, now=signed_at)
        assert report.status == WorkflowStatus.PENDING_ADMINISTRATIVE
        assert report.technical_signed_at == signed_at
        assert report.technical_signer_id == technical_user.user_id

        report = fiscalization.sign_report(report, SignerRole.ADMINISTRATIVE, "senha-correta",
                                           administrative_user, verifier, now=signed_at)
        assert report.status == WorkflowStatus.PENDING_MANAGER

        report = fiscalization.sign_report(report, SignerRole.MANAGER, "senha-correta", manager_user,
                                           verifier, now=signed_at)
        assert report.status == WorkflowStatus.COMPLETED
        assert report.manager_signer_id == manager_user.user_id

    def test_input_report_is_not_modified(self, report, technical_user, verifier):
        signed = fiscalization.sign_report(report, "technical", "senha-correta", technical_user, verifier)

        assert signed is not report
        assert report.status == WorkflowStatus.PENDING_TECHNICAL
        assert report.technical_signed_at is None

    def test_out_of_turn(self, report, manager_user, verifier):
        with pytest.raises(OutOfTurnError) as exc_info:
            fiscalization.sign_report(report, "manager", "senha-correta", manager_user, verifier)

        assert exc_info.value.awaited_role == "technical"
        assert "Fiscal Técnico" in exc_info.value.message
        # Turn is checked before the credential
        assert verifier.calls == []

    def test_wrong_credential(self, report, technical_user, verifier):
        with pytest.raises(ReauthenticationError):
            fiscalization.sign_report(report, "technical", "errada", technical_user, verifier)

        assert verifier.calls == [(technical_user.email, "errada")]
        assert report.status == WorkflowStatus.PENDING_TECHNICAL

    def test_completed_report(self, report, manager_user, verifier):
        report.status = WorkflowStatus.COMPLETED

        with pytest.raises(ReportCompletedError):
            fiscalization.sign_report(report, "manager", "senha-correta", manager_user, verifier)

    def test_completed_report_signed_twice(self, report, manager_user, verifier, signed_at):
        report.status = WorkflowStatus.COMPLETED
        report.manager_signed_at = signed_at
        report.manager_signer_id = "gestor"

        for _ in range(2):
            with pytest.raises(ReportCompletedError):
                fiscalization.sign_report(report, "manager", "senha-correta", manager_user, verifier)

        assert report.manager_signed_at == signed_at
        assert report.manager_signer_id == "gestor"
        assert verifier.calls == []

    def test_without_administrative_step(self, agreement_without_admin, technical_user, manager_user, verifier):
        report = fiscalization.create_report(agreement_without_admin, "2024-05", technical_user)

        with pytest.raises(OutOfTurnError):
            fiscalization.sign_report(report, "technical", "senha-correta", technical_user, verifier)
        with pytest.raises(OutOfTurnError):
            fiscalization.sign_report(report, "administrative", "senha-correta", technical_user, verifier)

        report = fiscalization.sign_report(report, "manager", "senha-correta", manager_user, verifier)

        assert report.status == WorkflowStatus.COMPLETED
        assert report.manager_signed_at is not None
        assert report.technical_signed_at is None
        assert report.administrative_signed_at is None

    def test_legacy_report_at_technical_step_skips_administrative(self, report, technical_user, verifier):
        report.workflow = WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP
        report.administrative_name = None

        signed = fiscalization.sign_report(report, "technical", "senha-correta", technical_user, verifier)

        assert signed.status == WorkflowStatus.PENDING_MANAGER

    def test_administrative_status_rejected_without_step(self, agreement):
        with pytest.raises(ValueError):
            FiscalizationReport(
                agreement_id=agreement.id,
                reference_month="2024-05",
                status=WorkflowStatus.PENDING_ADMINISTRATIVE,
                workflow=WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP
            )


class TestContentEditing:
    """Test content locking."""

    def test_technical_overseer_edits_before_signing(self, report, technical_user):
        content = {"title": "NOVO TÍTULO", "sections": []}

        updated = fiscalization.update_report_content(report, content, technical_user)

        assert updated.content.title == "NOVO TÍTULO"
        assert report.content.title == ""

    def test_other_user_cannot_edit(self, report, manager_user):
        with pytest.raises(ReportLockedError):
            fiscalization.update_report_content(report, {"title": "X"}, manager_user)

    def test_locked_after_technical_signature(self, report, technical_user, verifier):
        signed = fiscalization.sign_report(report, "technical", "senha-correta", technical_user, verifier)

        assert not fiscalization.can_edit_content(signed, technical_user)
        with pytest.raises(ReportLockedError):
            fiscalization.update_report_content(signed, {"title": "X"}, technical_user)

    def test_save_creates_missing_report(self, agreement, technical_user):
        report, created = fiscalization.save_report(None, agreement, "2024-05", None, technical_user)

        assert created
        assert report.reference_month == "2024-05"

    def test_save_updates_existing_report(self, report, agreement, technical_user):
        updated, created = fiscalization.save_report(report, agreement, "2024-05", {"title": "T"}, technical_user)

        assert not created
        assert updated.id == report.id
        assert updated.content.title == "T"


class TestListings:
    """Test report listings."""

    def _report(self, agreement, month):
        return FiscalizationReport(agreement_id=agreement.id, reference_month=month)

    def test_filter_range_newest_first(self, agreement):
        reports = [self._report(agreement, m) for m in ("2024-01", "2024-03", "2024-02", "2024-05")]

        selected = fiscalization.filter_reports_in_range(reports, "2024-02", "2024-04")

        assert [r.reference_month for r in selected] == ["2024-03", "2024-02"]

    def test_filter_open_range(self, agreement):
        reports = [self._report(agreement, m) for m in ("2023-12", "2024-01")]
        assert [r.reference_month for r in fiscalization.filter_reports_in_range(reports)] == ["2024-01", "2023-12"]

    def test_filter_rejects_bad_month(self, agreement):
        with pytest.raises(InvalidReferenceMonthError):
            fiscalization.filter_reports_in_range([], "2024-1")

    def test_missing_months_until_today(self, agreement):
        missing = fiscalization.missing_reference_months(
            agreement, agreement.end_date, ["2024-02", "2024-04"], date(2024, 6, 15)
        )
        assert missing == ["2024-01", "2024-03", "2024-05", "2024-06"]

    def test_missing_months_stop_at_effective_end(self, agreement):
        missing = fiscalization.missing_reference_months(agreement, date(2024, 2, 10), [], date(2024, 6, 15))
        assert missing == ["2024-01", "2024-02"]

    def test_missing_months_only_for_monthly(self, agreement):
        on_delivery = agreement.model_copy(update={"fiscalization_period": "on_delivery"})
        assert fiscalization.missing_reference_months(on_delivery, agreement.end_date, [], date(2024, 6, 15)) == []

    def test_signing_steps_without_administrative(self, agreement_without_admin, technical_user):
        report = fiscalization.create_report(agreement_without_admin, "2024-05", technical_user)

        steps = fiscalization.signing_steps(report)

        assert [step.role for step in steps] == [SignerRole.TECHNICAL, SignerRole.MANAGER]
        assert [step.is_current for step in steps] == [False, True]


class TestReportHalResponse:
    """Test HAL rendering and affordances."""

    def test_technical_overseer_sees_edit_and_sign(self, report, technical_user):
        response = fiscalization.build_report_hal_response(report, technical_user, "https://api.test")

        links = response["_links"]
        assert links["self"]["href"] == f"https://api.test/api/agreements/{report.agreement_id}/reports/2024-05"
        assert links["edit"]["method"] == "PUT"
        assert links["sign"]["href"].endswith("/reports/2024-05/sign")
        assert response["status_label"] == "AGUARDANDO FISCAL TÉCNICO"
        assert len(response["signatures"]) == 3

    def test_other_signer_sees_no_affordances(self, report, manager_user):
        response = fiscalization.build_report_hal_response(report, manager_user, "https://api.test")

        assert "edit" not in response["_links"]
        assert "sign" not in response["_links"]

    def test_collection_links_keep_range(self, report, technical_user):
        response = fiscalization.build_report_collection_hal_response(
            [report], report.agreement_id, technical_user, "https://api.test",
            start_month="2024-01", end_month="2024-06", missing_months=["2024-06"]
        )

        assert response["total"] == 1
        assert response["missing_months"] == ["2024-06"]
        assert response["_links"]["self"]["href"].endswith("/reports?from=2024-01&to=2024-06")
        assert response["_embedded"]["reports"][0]["id"] == report.id
