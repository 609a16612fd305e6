# SPDX-License-Identifier: Apache-2.0

"""
Agreement read model.

Everything shown next to an agreement that is not stored on it (effective
end dates, lifecycle status, days remaining, renewal advisory) is assembled
here from the agreement and its amendments. Presentation code consumes the
view and never derives these figures on its own.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from ..models.entities import Agreement, Amendment, UserContext
from ..models.enums import AgreementKind, LifecycleStatus
from .amendments import AmendmentChain, active_amendment_status, resolve_end_dates
from .dates import format_br_date
from .lifecycle import compute_days_remaining, derive_status, is_active as status_is_active
from .renewal import RenewalAdvisory, assess_renewal


@dataclass(frozen=True)
class AgreementView:
    """Agreement with its derived fields, recomputed on every read."""
    agreement: Agreement
    chain: AmendmentChain
    status: LifecycleStatus
    days_remaining: Optional[int]
    renewal: RenewalAdvisory
    amendment_status: Optional[str]

    @property
    def effective_end(self) -> date:
        return self.chain.confirmed_end

    @property
    def is_active(self) -> bool:
        return status_is_active(self.status)


def build_agreement_view(
    agreement: Agreement,
    amendments: Iterable[Amendment],
    today: date
) -> AgreementView:
    """
    Derive the presentation fields of an agreement.

    Status and days remaining use the confirmed end date; the renewal
    advisory uses the projected one, since renewals under review count
    toward the statutory limit.

    Args:
        agreement: Stored agreement
        amendments: Its amendments, any order
        today: Current date

    Returns:
        AgreementView for the agreement
    """
    amendments = list(amendments)
    chain = resolve_end_dates(agreement.end_date, amendments)
    status = derive_status(agreement.start_date, chain.confirmed_end, agreement.manual_status, today)

    return AgreementView(
        agreement=agreement,
        chain=chain,
        status=status,
        days_remaining=compute_days_remaining(chain.confirmed_end, status, today),
        renewal=assess_renewal(agreement.start_date, chain.projected_end, agreement.is_emergency),
        amendment_status=active_amendment_status(amendments)
    )


def build_agreement_hal_response(
    view: AgreementView,
    user_context: UserContext,
    base_url: str
) -> Dict[str, Any]:
    """
    Build HAL response for an agreement view.

    Args:
        view: Agreement view
        user_context: User context for permission-based links
        base_url: Base URL for link generation

    Returns:
        HAL-formatted response dictionary
    """
    agreement = view.agreement
    metadata = view.status.metadata

    response = {
        "id": agreement.id,
        "identifier": agreement.identifier,
        "kind": agreement.kind,
        "category": agreement.category,
        "department": agreement.department,
        "subject": agreement.subject,
        "supplier": agreement.supplier,
        "process_number": agreement.process_number,
        "start_date": agreement.start_date.isoformat(),
        "end_date": agreement.end_date.isoformat(),
        "confirmed_end_date": view.chain.confirmed_end.isoformat(),
        "projected_end_date": view.chain.projected_end.isoformat(),
        "end_date_display": format_br_date(view.chain.confirmed_end),
        "amendment_pending": view.chain.is_pending,
        "amendment_status": view.amendment_status,
        "status": view.status.value,
        "status_label": metadata.label,
        "status_tone": metadata.tone,
        "days_remaining": view.days_remaining,
        "is_active": view.is_active,
        "renewal": {
            "months_elapsed": view.renewal.months_elapsed,
            "limit": view.renewal.limit,
            "remaining": view.renewal.remaining,
            "outcome": view.renewal.outcome.value,
            "message": view.renewal.message
        },
        "is_emergency": agreement.is_emergency,
        "manual_status": agreement.manual_status,
        "fiscalization_period": agreement.fiscalization_period,
        "manager": agreement.manager,
        "technical_overseer": agreement.technical_overseer,
        "administrative_overseer": (
            agreement.administrative_overseer if agreement.has_administrative_overseer else None
        ),
        "_links": {
            "self": {"href": f"{base_url}/api/agreements/{agreement.id}"}
        }
    }

    links = response["_links"]

    if agreement.kind == AgreementKind.CONTRACT or agreement.fiscalization_period:
        links["reports"] = {"href": f"{base_url}/api/agreements/{agreement.id}/reports"}

    if user_context.has_permission("agreement:edit"):
        links["edit"] = {
            "href": f"{base_url}/api/agreements/{agreement.id}",
            "method": "PUT",
            "type": "application/json"
        }

    return response


def build_agreement_collection_hal_response(
    views: List[AgreementView],
    user_context: UserContext,
    base_url: str,
    collection_path: str = "/api/agreements"
) -> Dict[str, Any]:
    """Build HAL collection response for agreement views."""
    return {
        "total": len(views),
        "_embedded": {
            "agreements": [
                build_agreement_hal_response(view, user_context, base_url)
                for view in views
            ]
        },
        "_links": {
            "self": {"href": f"{base_url}{collection_path}"}
        }
    }
