# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the contract management platform.
"""

import re
from datetime import date, datetime
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import (
    AgreementKind,
    ManualStatus,
    FiscalizationPeriod,
    AmendmentType,
    DurationUnit,
    LegalReviewDecision,
    WorkflowStatus,
    WorkflowVariant,
)

REFERENCE_MONTH_PATTERN = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')


class Agreement(BaseEntity):
    """Tracked contract or price-registration minute with a validity period."""

    identifier: str = Field(..., min_length=1, max_length=50, description="Public identifier, e.g. 80/2018")
    kind: AgreementKind = Field(default=AgreementKind.CONTRACT, description="Contract or minute")
    category: str = Field(default="", description="Document type keyword")
    department: str = Field(default="", description="Owning department (secretaria)")
    subject: str = Field(default="", description="Agreement object (objeto)")
    supplier: Optional[str] = Field(None, description="Contracted supplier")
    process_number: Optional[str] = Field(None, description="Administrative process number")
    start_date: date = Field(..., description="Validity start date")
    end_date: date = Field(..., description="Original validity end date")
    manual_status: ManualStatus = Field(default=ManualStatus.AUTOMATIC, description="Manual lifecycle override")
    is_emergency: bool = Field(default=False, description="Emergency contracting (12 month limit)")
    fiscalization_period: Optional[FiscalizationPeriod] = Field(
        default=FiscalizationPeriod.MONTHLY, description="Fiscalization periodicity"
    )
    manager: str = Field(default="", description="Manager (gestor) e-mail")
    technical_overseer: str = Field(default="", description="Technical overseer e-mail")
    administrative_overseer: str = Field(default="", description="Administrative overseer e-mail")
    has_administrative_overseer: bool = Field(default=True, description="Whether an administrative overseer is required")
    notes: str = Field(default="", description="Free notes")

    @field_validator('identifier', 'category', 'department')
    @classmethod
    def normalize_upper(cls, v):
        """Free-text identifiers are stored trimmed and in upper case."""
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator('manager', 'technical_overseer', 'administrative_overseer')
    @classmethod
    def normalize_overseer(cls, v):
        """Overseer assignments are compared case-insensitively."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator('manual_status', mode='before')
    @classmethod
    def default_manual_status(cls, v):
        """Older records store no override as null."""
        return ManualStatus.AUTOMATIC if v in (None, "") else v

    def requires_administrative_signature(self) -> bool:
        """Check if reports for this agreement include the administrative step."""
        return bool(self.has_administrative_overseer and self.administrative_overseer.strip())


class SupplierSignatureStep(BaseModel):
    """Supplier signature step tracked as sent/received."""
    sent: bool = False
    received: bool = False


class PublicationStep(BaseModel):
    """Post-signature registrations (step 7)."""
    grp: bool = False
    attachments: bool = False
    licitacon: bool = False
    purchase_order: bool = False


class AmendmentChecklist(BaseModel):
    """Eight-step amendment processing checklist."""

    model_config = ConfigDict(use_enum_values=True)

    step1: bool = Field(default=False, description="Created")
    step2: bool = Field(default=False, description="In preparation")
    step3: bool = Field(default=False, description="Sent to legal review")
    step4: Optional[LegalReviewDecision] = Field(None, description="Legal review decision")
    step5: Union[bool, SupplierSignatureStep] = Field(default=False, description="Supplier signature")
    step6: bool = Field(default=False, description="Mayor signature")
    step7: PublicationStep = Field(default_factory=PublicationStep, description="Registrations")
    step8: bool = Field(default=False, description="Witness signature, concludes the amendment")


class Amendment(BaseEntity):
    """Term or value amendment (aditivo) belonging to one agreement."""

    agreement_id: str = Field(..., description="Owning agreement ID")
    type: AmendmentType = Field(..., description="Term extension or value change")
    duration: float = Field(default=0, description="Term extension amount")
    duration_unit: Optional[DurationUnit] = Field(None, description="Term extension unit")
    event_name: Optional[str] = Field(None, description="Amendment label, e.g. 1º TERMO ADITIVO")
    entry_date: Optional[date] = Field(None, description="Entry date, used for ordering")
    status: str = Field(default="ELABORANDO", description="Free-text processing status")
    checklist: AmendmentChecklist = Field(default_factory=AmendmentChecklist, description="Processing checklist")

    @field_validator('duration_unit', mode='before')
    @classmethod
    def parse_duration_unit(cls, v):
        """Accept Portuguese unit aliases."""
        if v in (None, ""):
            return None
        return DurationUnit.parse(v)

    @field_validator('checklist', mode='before')
    @classmethod
    def default_checklist(cls, v):
        """Older records store an empty checklist as null."""
        return {} if v is None else v

    @field_validator('status')
    @classmethod
    def normalize_status(cls, v):
        return v.strip().upper()

    @model_validator(mode='after')
    def validate_term_fields(self):
        """Term amendments need a unit when a duration is given."""
        if self.type == AmendmentType.TERM and self.duration and self.duration_unit is None:
            raise ValueError('duration_unit is required for term amendments')
        return self

    def is_concluded(self) -> bool:
        """An amendment is concluded once the witnesses have signed."""
        return self.checklist.step8 is True


class ReportField(BaseModel):
    """Single checklist or narrative field of a report section."""
    id: str
    label: str
    type: str = Field(..., pattern=r'^(checkbox|textarea)$')
    value: Union[bool, str]


class ReportSection(BaseModel):
    """Titled group of report fields."""
    title: str
    fields: List[ReportField] = Field(default_factory=list)


class ReportContent(BaseModel):
    """Structured fiscalization report payload."""

    model_config = ConfigDict(use_enum_values=True)

    template: Optional[str] = Field(None, description="Template the content was created from")
    title: str = Field(default="", description="Report title")
    header: str = Field(default="", description="Reference header")
    sections: List[ReportSection] = Field(default_factory=list)


class FiscalizationReport(BaseEntity):
    """Monthly fiscalization report signed in sequence by the overseers."""

    agreement_id: str = Field(..., description="Owning agreement ID")
    agreement_kind: AgreementKind = Field(default=AgreementKind.CONTRACT, description="Owning agreement kind")
    reference_month: str = Field(..., description="Reference month, YYYY-MM")
    content: ReportContent = Field(default_factory=ReportContent, description="Structured content")
    status: WorkflowStatus = Field(default=WorkflowStatus.PENDING_TECHNICAL, description="Workflow status")
    workflow: WorkflowVariant = Field(
        default=WorkflowVariant.WITH_ADMINISTRATIVE_STEP, description="Signing sequence frozen at creation"
    )

    # Signer names captured from the agreement when the report was created
    technical_name: Optional[str] = Field(None, description="Technical overseer e-mail at creation, matched against the signer")
    administrative_name: Optional[str] = Field(None, description="Administrative overseer e-mail at creation, matched against the signer")
    manager_name: Optional[str] = Field(None, description="Manager e-mail at creation, matched against the signer")

    technical_signed_at: Optional[datetime] = None
    technical_signer_id: Optional[str] = None
    administrative_signed_at: Optional[datetime] = None
    administrative_signer_id: Optional[str] = None
    manager_signed_at: Optional[datetime] = None
    manager_signer_id: Optional[str] = None

    @field_validator('reference_month')
    @classmethod
    def validate_reference_month(cls, v):
        """Validate YYYY-MM format."""
        if not REFERENCE_MONTH_PATTERN.match(v):
            raise ValueError('Reference month must use the YYYY-MM format')
        return v

    @model_validator(mode='after')
    def validate_workflow_status(self):
        """The administrative state does not exist without the administrative step."""
        if (self.workflow == WorkflowVariant.WITHOUT_ADMINISTRATIVE_STEP
                and self.status == WorkflowStatus.PENDING_ADMINISTRATIVE):
            raise ValueError('Report has no administrative step')
        return self


class User(BaseEntity):
    """Platform user as needed for credential verification."""

    email: str = Field(..., description="User email address")
    name: str = Field(default="", max_length=200, description="User full name")
    password_hash: str = Field(..., description="Hashed password")
    department: Optional[str] = Field(None, description="User department")
    permissions: List[str] = Field(default_factory=list, description="Capability set")
    is_active: bool = Field(default=True, description="Whether the account may sign in")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class UserContext(BaseModel):
    """User context for request processing with authentication and authorization data."""

    user_id: str = Field(..., description="Authenticated user ID")
    email: str = Field(..., description="User email")
    name: Optional[str] = Field(None, description="User display name")
    department: Optional[str] = Field(None, description="User department")
    permissions: List[str] = Field(default_factory=list, description="User's effective permissions")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(
        use_enum_values=True
    )

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    def has_permission(self, permission: str) -> bool:
        """Check if user has a specific permission."""
        return permission in self.permissions

    def has_any_permission(self, permissions: List[str]) -> bool:
        """Check if user has any of the specified permissions."""
        return any(perm in self.permissions for perm in permissions)
