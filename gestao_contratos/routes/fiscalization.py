# SPDX-License-Identifier: Apache-2.0

"""
Fiscalization report endpoints.

Reports are keyed by agreement and reference month. Content can be edited
while the technical overseer has not signed; signing re-authenticates the
signer and is committed only if the stored status did not change meanwhile.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from ..domain import fiscalization as fiscalization_domain
from ..domain.dates import parse_reference_month
from ..domain.errors import WorkflowError
from ..models.enums import WorkflowStatus
from ..middleware.auth import require_jwt
from ..middleware.error_handler import AuthorizationException, NotFoundException
from ..models.responses import ErrorResponse
from ..models.requests import (
    AgreementPath, ReportPath, ReportRangeQuery, SaveReportRequest, SignReportRequest
)
from .agreements import load_agreement_view

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
fiscalization_tag = Tag(name="Fiscalization", description="Monthly fiscalization reports and signatures")
fiscalization_bp = APIBlueprint(
    'fiscalization',
    __name__,
    url_prefix='/api/agreements',
    abp_tags=[fiscalization_tag]
)


@fiscalization_bp.get('/<agreement_id>/reports', responses={"400": ErrorResponse, "404": ErrorResponse})
@require_jwt
def list_reports(path: AgreementPath, query: ReportRangeQuery):
    """
    Report history of an agreement, newest first.

    The optional from/to range bounds the reference months (YYYY-MM).
    Also lists the months still lacking a report.
    """
    user_context = g.user_context
    today = current_app.clock()

    with tracer.start_as_current_span(
        "fiscalization.reports.list",
        attributes={"user.id": user_context.user_id, "agreement.id": path.agreement_id}
    ) as span:
        view = load_agreement_view(path.agreement_id, today)

        stored = current_app.fiscalization_repository.list_for_agreement(path.agreement_id)
        reports = fiscalization_domain.filter_reports_in_range(stored, query.start_month, query.end_month)
        missing = fiscalization_domain.missing_reference_months(
            view.agreement,
            view.effective_end,
            [report.reference_month for report in stored],
            today
        )

        span.set_attributes({
            "reports.count": len(reports),
            "reports.missing": len(missing)
        })

        response = fiscalization_domain.build_report_collection_hal_response(
            reports,
            path.agreement_id,
            user_context,
            current_app.config['BASE_URL'],
            start_month=query.start_month,
            end_month=query.end_month,
            missing_months=missing
        )
        return jsonify(response)


@fiscalization_bp.put(
    '/<agreement_id>/reports/<reference_month>',
    responses={"400": ErrorResponse, "403": ErrorResponse, "404": ErrorResponse, "409": ErrorResponse}
)
@require_jwt
def save_report(path: ReportPath, body: SaveReportRequest):
    """
    Create or update the report of an agreement for a reference month.

    A missing report is created from the agreement's template with its
    signer names and workflow frozen. Content changes are accepted only
    from the technical overseer, before the technical signature.
    """
    user_context = g.user_context

    with tracer.start_as_current_span(
        "fiscalization.reports.save",
        attributes={
            "user.id": user_context.user_id,
            "agreement.id": path.agreement_id,
            "report.reference_month": path.reference_month
        }
    ) as span:
        parse_reference_month(path.reference_month)
        view = load_agreement_view(path.agreement_id, current_app.clock())
        repository = current_app.fiscalization_repository

        existing = repository.find_by_month(path.agreement_id, path.reference_month)
        previous_status = existing.status if existing else None

        report, created = fiscalization_domain.save_report(
            existing,
            view.agreement,
            path.reference_month,
            body.content,
            user_context
        )

        if created:
            repository.insert(report)
        else:
            repository.save_content(report, previous_status)

        span.set_attributes({"report.id": report.id, "report.created": created})
        logger.info(
            "Fiscalization report saved",
            extra={
                "user_id": user_context.user_id,
                "report_id": report.id,
                "agreement_id": path.agreement_id,
                "reference_month": path.reference_month,
                "report_created": created
            }
        )

        response = fiscalization_domain.build_report_hal_response(
            report,
            user_context,
            current_app.config['BASE_URL']
        )
        return jsonify(response), 201 if created else 200


@fiscalization_bp.post(
    '/<agreement_id>/reports/<reference_month>/sign',
    responses={"401": ErrorResponse, "403": ErrorResponse, "404": ErrorResponse, "409": ErrorResponse}
)
@require_jwt
def sign_report(path: ReportPath, body: SignReportRequest):
    """
    Sign a report as one of its roles.

    The signer's password is checked again. Signing out of turn, signing a
    completed report, or losing a race with another signer leaves the
    stored report unchanged.
    """
    user_context = g.user_context

    with tracer.start_as_current_span(
        "fiscalization.reports.sign",
        attributes={
            "user.id": user_context.user_id,
            "agreement.id": path.agreement_id,
            "report.reference_month": path.reference_month,
            "report.role": body.role.value
        }
    ) as span:
        parse_reference_month(path.reference_month)
        repository = current_app.fiscalization_repository

        report = repository.find_by_month(path.agreement_id, path.reference_month)
        if report is None:
            raise NotFoundException(
                f"No report for agreement {path.agreement_id} in {path.reference_month}"
            )

        if not fiscalization_domain.is_assigned_signer(report, body.role, user_context):
            raise AuthorizationException(
                f"User is not the {body.role.label} assigned to this report"
            )

        try:
            signed = fiscalization_domain.sign_report(
                report,
                body.role,
                body.credential,
                user_context,
                current_app.credential_verifier
            )
        except WorkflowError as e:
            span.set_status(Status(StatusCode.ERROR, e.error_type))
            raise

        repository.commit_transition(signed, report.status)

        span.set_attributes({"report.id": signed.id, "report.status": WorkflowStatus(signed.status).value})

        response = fiscalization_domain.build_report_hal_response(
            signed,
            user_context,
            current_app.config['BASE_URL']
        )
        return jsonify(response)
