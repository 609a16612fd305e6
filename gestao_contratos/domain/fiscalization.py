# SPDX-License-Identifier: Apache-2.0

"""
Fiscalization report workflow.

A report is signed in sequence by the technical overseer, the administrative
overseer and the manager. Whether the administrative step exists is decided
once, when the report is created, from the agreement's assignment at that
moment; the choice is stored on the report as its workflow variant and is
never re-evaluated, so later edits to the agreement do not affect reports
already in flight.

Every signature requires the signer to re-authenticate with their
credential through an injected CredentialVerifier.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, Union

from ..models.base import utc_now
from ..models.entities import Agreement, FiscalizationReport, ReportContent, UserContext
from ..models.enums import FiscalizationPeriod, SignerRole, WorkflowStatus, WorkflowVariant
from .dates import next_reference_month, parse_reference_month, reference_month_for
from .errors import OutOfTurnError, ReauthenticationError, ReportCompletedError, ReportLockedError
from .templates import build_report_content

logger = logging.getLogger(__name__)


class CredentialVerifier(Protocol):
    """Identity provider capability used at signing time."""

    def reauthenticate(self, email: str, credential: str) -> bool:
        ...


@dataclass(frozen=True)
class Transition:
    """A signature awaited in a given status and the status it leads to."""
    role: SignerRole
    next_status: WorkflowStatus


WORKFLOW_TRANSITIONS: Dict[WorkflowVariant, Dict[WorkflowStatus, Transition]] = {
    WorkflowVariant.WITH_ADMINISTRATIVE_STEP: {
        WorkflowStatus.PENDING_TECHNICAL: Transition(SignerRole.TECHNICAL, WorkflowStatus.PENDING_ADMINISTRATIVE),
        WorkflowStatus.PENDING_ADMINISTRATIVE: Transition(SignerRole.ADMINISTRATIVE, WorkflowStatus.PENDING_MANAGER),
        WorkflowStatus.PENDING_MANAGER: Transition(SignerRole.MANAGER, WorkflowStatus.COMPLETED),
    },
    WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP: {
        # Reports migrated from the legacy store may still sit at the technical step
        WorkflowStatus.PENDING_TECHNICAL: Transition(SignerRole.TECHNICAL, WorkflowStatus.PENDING_MANAGER),
        WorkflowStatus.PENDING_MANAGER: Transition(SignerRole.MANAGER, WorkflowStatus.COMPLETED),
    },
}

INITIAL_STATUS: Dict[WorkflowVariant, WorkflowStatus] = {
    WorkflowVariant.WITH_ADMINISTRATIVE_STEP: WorkflowStatus.PENDING_TECHNICAL,
    WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP: WorkflowStatus.PENDING_MANAGER,
}

SIGNER_NAME_FIELDS = {
    SignerRole.TECHNICAL: "technical_name",
    SignerRole.ADMINISTRATIVE: "administrative_name",
    SignerRole.MANAGER: "manager_name",
}


def choose_workflow_variant(agreement: Agreement) -> WorkflowVariant:
    """Pick the signing sequence for a new report of ``agreement``."""
    if agreement.requires_administrative_signature():
        return WorkflowVariant.WITH_ADMINISTRATIVE_STEP
    return WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP


def create_report(
    agreement: Agreement,
    reference_month: str,
    user_context: UserContext
) -> FiscalizationReport:
    """
    Create the report of ``agreement`` for ``reference_month``.

    Signer names are copied from the agreement and stay fixed for the life
    of the report. The administrative name is left empty when the report has
    no administrative step.

    Raises:
        InvalidReferenceMonthError: If the reference month is not YYYY-MM
    """
    parse_reference_month(reference_month)
    variant = choose_workflow_variant(agreement)

    report = FiscalizationReport(
        agreement_id=agreement.id,
        agreement_kind=agreement.kind,
        reference_month=reference_month,
        content=build_report_content(agreement),
        status=INITIAL_STATUS[variant],
        workflow=variant,
        technical_name=agreement.technical_overseer or None,
        administrative_name=(
            agreement.administrative_overseer
            if variant == WorkflowVariant.WITH_ADMINISTRATIVE_STEP else None
        ),
        manager_name=agreement.manager or None,
        created_by=user_context.user_id,
        updated_by=user_context.user_id
    )

    logger.debug(
        "Fiscalization report created",
        extra={
            "agreement_id": agreement.id,
            "reference_month": reference_month,
            "workflow": variant.value,
            "status": report.status
        }
    )
    return report


def current_transition(report: FiscalizationReport) -> Optional[Transition]:
    """Transition awaited by the report, None once completed."""
    variant = WorkflowVariant(report.workflow)
    return WORKFLOW_TRANSITIONS[variant].get(WorkflowStatus(report.status))


def expected_role(report: FiscalizationReport) -> Optional[SignerRole]:
    """Role whose signature the report is waiting for."""
    transition = current_transition(report)
    return transition.role if transition else None


def is_assigned_signer(report: FiscalizationReport, role: Union[SignerRole, str], user_context: UserContext) -> bool:
    """Check if the user is the person named for ``role`` on the report."""
    assigned = getattr(report, SIGNER_NAME_FIELDS[SignerRole(role)])
    return bool(assigned) and assigned.strip().lower() == user_context.email


def sign_report(
    report: FiscalizationReport,
    role: Union[SignerRole, str],
    credential: str,
    user_context: UserContext,
    verifier: CredentialVerifier,
    now: Optional[datetime] = None
) -> FiscalizationReport:
    """
    Sign ``report`` as ``role`` and advance its workflow.

    Args:
        report: Report as last read from storage
        role: Signing role
        credential: Password typed by the signer at signing time
        user_context: Acting user
        verifier: Identity provider used to re-authenticate the user
        now: Signature timestamp, defaults to the current UTC time

    Returns:
        A new report with the role's signature stamped and the next status.
        The given report is left untouched.

    Raises:
        ReportCompletedError: If the report is already completed
        OutOfTurnError: If another role's signature is awaited
        ReauthenticationError: If the credential does not authenticate the user
    """
    role = SignerRole(role)
    if WorkflowStatus(report.status) == WorkflowStatus.COMPLETED:
        raise ReportCompletedError()

    transition = current_transition(report)
    if transition is None or transition.role != role:
        awaited = transition.role.value if transition else None
        raise OutOfTurnError(role.value, awaited)

    if not verifier.reauthenticate(user_context.email, credential):
        logger.warning(
            "Signature rejected: re-authentication failed",
            extra={"report_id": report.id, "user_id": user_context.user_id, "role": role.value}
        )
        raise ReauthenticationError()

    signed_at = now or utc_now()
    updated = report.model_copy(deep=True)
    setattr(updated, f"{role.value}_signed_at", signed_at)
    setattr(updated, f"{role.value}_signer_id", user_context.user_id)
    updated.status = transition.next_status
    updated.update_timestamp(user_context.user_id)

    logger.info(
        "Fiscalization report signed",
        extra={
            "report_id": report.id,
            "user_id": user_context.user_id,
            "role": role.value,
            "previous_status": report.status,
            "new_status": updated.status
        }
    )
    return updated


def can_edit_content(report: FiscalizationReport, user_context: UserContext) -> bool:
    """Content is editable only at the technical step, by the technical overseer."""
    return (
        WorkflowStatus(report.status) == WorkflowStatus.PENDING_TECHNICAL
        and is_assigned_signer(report, SignerRole.TECHNICAL, user_context)
    )


def update_report_content(
    report: FiscalizationReport,
    content: Union[ReportContent, Dict[str, Any]],
    user_context: UserContext
) -> FiscalizationReport:
    """
    Replace the report content.

    Raises:
        ReportLockedError: If the user may not edit the report in its current status
    """
    if not can_edit_content(report, user_context):
        raise ReportLockedError()

    updated = report.model_copy(deep=True)
    updated.content = content if isinstance(content, ReportContent) else ReportContent(**content)
    updated.update_timestamp(user_context.user_id)
    return updated


def save_report(
    existing: Optional[FiscalizationReport],
    agreement: Agreement,
    reference_month: str,
    content: Optional[Union[ReportContent, Dict[str, Any]]],
    user_context: UserContext
) -> Tuple[FiscalizationReport, bool]:
    """
    Create or update the report of an agreement for a month.

    Args:
        existing: Report already stored for (agreement, month), if any
        agreement: Owning agreement
        reference_month: Month in YYYY-MM format
        content: New content, or None to keep the template/current content
        user_context: Acting user

    Returns:
        Tuple of (report to store, whether it was created)
    """
    created = existing is None
    report = existing if existing is not None else create_report(agreement, reference_month, user_context)

    if content is not None:
        report = update_report_content(report, content, user_context)

    return report, created


@dataclass(frozen=True)
class SigningStep:
    """Per-role signing state for rendering."""
    role: SignerRole
    name: Optional[str]
    signed_at: Optional[datetime]
    signer_id: Optional[str]
    is_current: bool


def signing_steps(report: FiscalizationReport) -> List[SigningStep]:
    """Signing steps of the report, in order, skipping roles not in its workflow."""
    awaited = expected_role(report)
    roles = [SignerRole.TECHNICAL, SignerRole.ADMINISTRATIVE, SignerRole.MANAGER]
    if WorkflowVariant(report.workflow) == WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP:
        roles.remove(SignerRole.ADMINISTRATIVE)

    return [
        SigningStep(
            role=role,
            name=getattr(report, SIGNER_NAME_FIELDS[role]),
            signed_at=getattr(report, f"{role.value}_signed_at"),
            signer_id=getattr(report, f"{role.value}_signer_id"),
            is_current=role == awaited
        )
        for role in roles
    ]


def filter_reports_in_range(
    reports: Iterable[FiscalizationReport],
    start_month: Optional[str] = None,
    end_month: Optional[str] = None
) -> List[FiscalizationReport]:
    """
    Reports whose reference month lies in [start_month, end_month], newest first.

    Zero-padded YYYY-MM strings compare correctly as plain strings.
    """
    if start_month:
        parse_reference_month(start_month)
    if end_month:
        parse_reference_month(end_month)

    selected = [
        report for report in reports
        if (not start_month or report.reference_month >= start_month)
        and (not end_month or report.reference_month <= end_month)
    ]
    return sorted(selected, key=lambda report: report.reference_month, reverse=True)


def missing_reference_months(
    agreement: Agreement,
    effective_end: date,
    existing_months: Iterable[str],
    today: date
) -> List[str]:
    """
    Months of a monthly-fiscalized agreement that have no report yet.

    Covers the start month up to the earlier of the current month and the
    month of the effective end date.
    """
    if agreement.fiscalization_period != FiscalizationPeriod.MONTHLY:
        return []

    first = reference_month_for(agreement.start_date)
    last = min(reference_month_for(today), reference_month_for(effective_end))
    existing = set(existing_months)

    missing = []
    month = first
    while month <= last:
        if month not in existing:
            missing.append(month)
        month = next_reference_month(month)
    return missing


def build_report_hal_response(
    report: FiscalizationReport,
    user_context: UserContext,
    base_url: str
) -> Dict[str, Any]:
    """
    Build HAL response for a report with affordance links.

    Args:
        report: Fiscalization report
        user_context: User context for permission-based links
        base_url: Base URL for link generation

    Returns:
        HAL-formatted response dictionary
    """
    status = WorkflowStatus(report.status)
    report_path = f"{base_url}/api/agreements/{report.agreement_id}/reports/{report.reference_month}"

    response = {
        "id": report.id,
        "agreement_id": report.agreement_id,
        "agreement_kind": report.agreement_kind,
        "reference_month": report.reference_month,
        "status": status.value,
        "status_label": status.metadata.label,
        "status_tone": status.metadata.tone,
        "workflow": report.workflow,
        "content": report.content.model_dump(),
        "signatures": [
            {
                "role": step.role.value,
                "role_label": step.role.label,
                "name": step.name,
                "signed_at": step.signed_at.isoformat() if step.signed_at else None,
                "signer_id": step.signer_id,
                "is_current": step.is_current
            }
            for step in signing_steps(report)
        ],
        "created_at": report.created_at.isoformat() if report.created_at else None,
        "updated_at": report.updated_at.isoformat() if report.updated_at else None,
        "_links": {
            "self": {"href": report_path},
            "agreement": {"href": f"{base_url}/api/agreements/{report.agreement_id}"}
        }
    }

    links = response["_links"]

    if can_edit_content(report, user_context):
        links["edit"] = {
            "href": report_path,
            "method": "PUT",
            "type": "application/json"
        }

    awaited = expected_role(report)
    if awaited is not None and is_assigned_signer(report, awaited, user_context):
        links["sign"] = {
            "href": f"{report_path}/sign",
            "method": "POST",
            "type": "application/json",
            "title": f"Assinar como {awaited.label}"
        }

    return response


def build_report_collection_hal_response(
    reports: List[FiscalizationReport],
    agreement_id: str,
    user_context: UserContext,
    base_url: str,
    start_month: Optional[str] = None,
    end_month: Optional[str] = None,
    missing_months: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Build HAL collection response for the report history of an agreement.

    Args:
        reports: Reports already filtered and ordered
        agreement_id: Owning agreement ID
        user_context: User context for permission-based links
        base_url: Base URL for link generation
        start_month: Lower bound of the requested range, if any
        end_month: Upper bound of the requested range, if any
        missing_months: Months still lacking a report

    Returns:
        HAL-formatted collection response
    """
    collection_path = f"{base_url}/api/agreements/{agreement_id}/reports"
    query = "&".join(
        f"{name}={value}" for name, value in (("from", start_month), ("to", end_month)) if value
    )

    response = {
        "total": len(reports),
        "from": start_month,
        "to": end_month,
        "missing_months": missing_months or [],
        "_embedded": {
            "reports": [
                build_report_hal_response(report, user_context, base_url)
                for report in reports
            ]
        },
        "_links": {
            "self": {"href": f"{collection_path}?{query}" if query else collection_path},
            "agreement": {"href": f"{base_url}/api/agreements/{agreement_id}"}
        }
    }
    return response
