# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the contract management platform.

Status enums own their display metadata so presentation code resolves
labels and tones from one place instead of per-screen lookup tables.
"""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class StatusMetadata:
    """Display metadata attached to a status value."""
    label: str
    tone: str


class AgreementKind(str, Enum):
    """Kind of tracked agreement."""
    CONTRACT = "contract"
    MINUTE = "minute"


class ManualStatus(str, Enum):
    """Manual lifecycle override chosen by the contracts sector."""
    AUTOMATIC = "automatic"
    EXECUTED = "executed"
    RESCINDED = "rescinded"


class LifecycleStatus(str, Enum):
    """Derived agreement lifecycle status."""
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"
    EXECUTED = "executed"
    RESCINDED = "rescinded"

    @property
    def metadata(self) -> StatusMetadata:
        return _LIFECYCLE_METADATA[self]

    @property
    def is_terminal(self) -> bool:
        """Terminal states make days-remaining meaningless."""
        return self in (LifecycleStatus.EXPIRED, LifecycleStatus.EXECUTED, LifecycleStatus.RESCINDED)


_LIFECYCLE_METADATA = {
    LifecycleStatus.ACTIVE: StatusMetadata("VIGENTE", "green"),
    LifecycleStatus.WARNING: StatusMetadata("A VENCER", "amber"),
    LifecycleStatus.EXPIRED: StatusMetadata("VENCIDO", "red"),
    LifecycleStatus.EXECUTED: StatusMetadata("EXECUTADO", "slate"),
    LifecycleStatus.RESCINDED: StatusMetadata("RESCINDIDO", "slate"),
}


class FiscalizationPeriod(str, Enum):
    """How often an agreement must be fiscalized."""
    MONTHLY = "monthly"
    ON_DELIVERY = "on_delivery"


class AmendmentType(str, Enum):
    """Amendment (aditivo) type."""
    TERM = "term"
    VALUE = "value"


class DurationUnit(str, Enum):
    """Calendar unit for durations."""
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"

    @classmethod
    def parse(cls, value) -> "DurationUnit":
        """Accept canonical names and the Portuguese aliases stored by older records."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized in _DURATION_ALIASES:
            return _DURATION_ALIASES[normalized]
        return cls(normalized)


_DURATION_ALIASES = {
    "dia": DurationUnit.DAYS,
    "dias": DurationUnit.DAYS,
    "mes": DurationUnit.MONTHS,
    "mês": DurationUnit.MONTHS,
    "meses": DurationUnit.MONTHS,
    "ano": DurationUnit.YEARS,
    "anos": DurationUnit.YEARS,
}


class LegalReviewDecision(str, Enum):
    """Decision returned by the legal department (PGM) on step 4."""
    APPROVED = "approved"
    APPROVED_WITH_RESERVATION = "approved_with_reservation"
    REJECTED = "rejected"


class SignerRole(str, Enum):
    """Roles that sign a fiscalization report."""
    TECHNICAL = "technical"
    ADMINISTRATIVE = "administrative"
    MANAGER = "manager"

    @property
    def label(self) -> str:
        return _SIGNER_LABELS[self]


_SIGNER_LABELS = {
    SignerRole.TECHNICAL: "Fiscal Técnico",
    SignerRole.ADMINISTRATIVE: "Fiscal Administrativo",
    SignerRole.MANAGER: "Gestor",
}


class WorkflowStatus(str, Enum):
    """Fiscalization report workflow status."""
    PENDING_TECHNICAL = "pending_technical"
    PENDING_ADMINISTRATIVE = "pending_administrative"
    PENDING_MANAGER = "pending_manager"
    COMPLETED = "completed"

    @property
    def metadata(self) -> StatusMetadata:
        return _WORKFLOW_METADATA[self]


_WORKFLOW_METADATA = {
    WorkflowStatus.PENDING_TECHNICAL: StatusMetadata("AGUARDANDO FISCAL TÉCNICO", "amber"),
    WorkflowStatus.PENDING_ADMINISTRATIVE: StatusMetadata("AGUARDANDO FISCAL ADMINISTRATIVO", "amber"),
    WorkflowStatus.PENDING_MANAGER: StatusMetadata("AGUARDANDO GESTOR", "blue"),
    WorkflowStatus.COMPLETED: StatusMetadata("CONCLUÍDO", "green"),
}


class WorkflowVariant(str, Enum):
    """Signing sequence chosen once when a report is created."""
    WITH_ADMINISTRATIVE_STEP = "with_administrative_step"
    WITHOUT_ADMINISTRATIVE_STEP = "without_administrative_step"


class ReportTemplateKind(str, Enum):
    """Fiscalization report checklist templates."""
    CONTINUOUS_SERVICE = "continuous_service"
    PUBLIC_WORKS = "public_works"
    GOODS_ACQUISITION = "goods_acquisition"
    GENERIC = "generic"


class RenewalOutcome(str, Enum):
    """Classification of a renewal advisory."""
    AVAILABLE = "available"
    LIMIT_REACHED = "limit_reached"
    EXCEEDED = "exceeded"
