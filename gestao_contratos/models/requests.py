# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from .entities import REFERENCE_MONTH_PATTERN, ReportContent
from .enums import LifecycleStatus, SignerRole


def _validate_month(value: Optional[str]) -> Optional[str]:
    if value is not None and not REFERENCE_MONTH_PATTERN.match(value):
        raise ValueError('Reference month must be in YYYY-MM format')
    return value


class SaveReportRequest(BaseModel):
    """Request model for creating or updating a fiscalization report."""

    content: Optional[ReportContent] = Field(
        None, description="Report content; omitted to create the report from its template"
    )


class SignReportRequest(BaseModel):
    """Request model for signing a fiscalization report."""

    role: SignerRole = Field(..., description="Role the user signs as")
    credential: str = Field(..., min_length=1, description="User password, checked again at signing time")


class ReportRangeQuery(BaseModel):
    """Reference month range for report history queries."""

    model_config = ConfigDict(populate_by_name=True)

    start_month: Optional[str] = Field(None, alias="from", description="First month (YYYY-MM)")
    end_month: Optional[str] = Field(None, alias="to", description="Last month (YYYY-MM)")

    @field_validator('start_month', 'end_month')
    @classmethod
    def validate_month(cls, v):
        """Validate reference month format."""
        return _validate_month(v)


class LoginRequest(BaseModel):
    """Request model for user authentication."""

    email: str = Field(..., description="User email address")
    password: str = Field(..., description="User password")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        import re
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class AgreementPath(BaseModel):
    """Path parameters identifying an agreement."""

    agreement_id: str = Field(..., description="Agreement ID")


class ReportPath(BaseModel):
    """Path parameters identifying a fiscalization report."""

    agreement_id: str = Field(..., description="Agreement ID")
    reference_month: str = Field(..., description="Reference month (YYYY-MM)")


class AgreementListQuery(BaseModel):
    """Filters for agreement listings."""

    department: Optional[str] = Field(None, description="Owning department")
    status: Optional[LifecycleStatus] = Field(None, description="Derived lifecycle status")
