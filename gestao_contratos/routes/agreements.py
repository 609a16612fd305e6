# SPDX-License-Identifier: Apache-2.0

"""
Agreement endpoints.

Every read recomputes the derived fields (effective end dates, lifecycle
status, days remaining, renewal advisory) from the stored agreement and its
amendments.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from ..domain import agreements as agreement_domain
from ..domain import alerts as alert_domain
from ..middleware.auth import require_jwt
from ..middleware.error_handler import NotFoundException
from ..models.requests import AgreementListQuery, AgreementPath
from ..models.responses import ErrorResponse

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
agreements_tag = Tag(name="Agreements", description="Contracts, minutes and their derived status")
agreements_bp = APIBlueprint(
    'agreements',
    __name__,
    url_prefix='/api/agreements',
    abp_tags=[agreements_tag]
)


def load_agreement_view(agreement_id: str, today):
    """
    Load an agreement with its amendments and derive its view.

    Raises:
        NotFoundException: If the agreement does not exist
    """
    agreement = current_app.agreement_repository.get(agreement_id)
    if agreement is None:
        raise NotFoundException(f"Agreement {agreement_id} not found")

    amendments = current_app.amendment_repository.list_for_agreement(agreement_id)
    return agreement_domain.build_agreement_view(agreement, amendments, today)


def load_all_views(today):
    agreements = current_app.agreement_repository.list_all()
    amendments = current_app.amendment_repository.list_by_agreement([a.id for a in agreements])
    return [
        agreement_domain.build_agreement_view(agreement, amendments.get(agreement.id, []), today)
        for agreement in agreements
    ]


@agreements_bp.get('')
@require_jwt
def list_agreements(query: AgreementListQuery):
    """
    List agreements with their derived status.

    Optionally filtered by department and by derived lifecycle status.
    """
    user_context = g.user_context
    today = current_app.clock()

    with tracer.start_as_current_span(
        "agreements.list",
        attributes={"user.id": user_context.user_id}
    ) as span:
        views = load_all_views(today)

        if query.department:
            department = query.department.strip().upper()
            views = [view for view in views if view.agreement.department == department]
        if query.status:
            views = [view for view in views if view.status == query.status]

        span.set_attribute("agreements.count", len(views))

        response = agreement_domain.build_agreement_collection_hal_response(
            views,
            user_context,
            current_app.config['BASE_URL']
        )
        return jsonify(response)


@agreements_bp.get('/alerts')
@require_jwt
def list_expiry_alerts():
    """
    List agreements hitting an expiry alert threshold today.

    Thresholds come from the EXPIRY_ALERT_THRESHOLDS setting.
    """
    user_context = g.user_context
    today = current_app.clock()
    thresholds = current_app.config['EXPIRY_ALERT_THRESHOLDS']

    with tracer.start_as_current_span(
        "agreements.alerts",
        attributes={"user.id": user_context.user_id, "alerts.date": today.isoformat()}
    ) as span:
        alerts = alert_domain.pending_expiry_alerts(load_all_views(today), thresholds)
        span.set_attribute("alerts.count", len(alerts))

        logger.info(
            "Expiry alerts computed",
            extra={"date": today.isoformat(), "count": len(alerts)}
        )

        base_url = current_app.config['BASE_URL']
        return jsonify({
            "date": today.isoformat(),
            "thresholds": list(thresholds),
            "total": len(alerts),
            "_embedded": {
                "alerts": [
                    {
                        "agreement_id": alert.agreement_id,
                        "identifier": alert.identifier,
                        "department": alert.department,
                        "subject": alert.subject,
                        "end_date": alert.end_date.isoformat(),
                        "days_remaining": alert.days_remaining,
                        "_links": {
                            "agreement": {"href": f"{base_url}/api/agreements/{alert.agreement_id}"}
                        }
                    }
                    for alert in alerts
                ]
            },
            "_links": {
                "self": {"href": f"{base_url}/api/agreements/alerts"}
            }
        })


@agreements_bp.get('/<agreement_id>', responses={"404": ErrorResponse})
@require_jwt
def get_agreement(path: AgreementPath):
    """
    Get an agreement with its derived fields.
    """
    user_context = g.user_context

    with tracer.start_as_current_span(
        "agreements.get",
        attributes={"user.id": user_context.user_id, "agreement.id": path.agreement_id}
    ) as span:
        view = load_agreement_view(path.agreement_id, current_app.clock())
        span.set_attributes({
            "agreement.status": view.status.value,
            "agreement.amendment_pending": view.chain.is_pending
        })

        response = agreement_domain.build_agreement_hal_response(
            view,
            user_context,
            current_app.config['BASE_URL']
        )
        return jsonify(response)
