# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for contract management.
"""

# Base models
from .base import BaseEntity

# Enumerations
from .enums import (
    AgreementKind,
    ManualStatus,
    LifecycleStatus,
    FiscalizationPeriod,
    AmendmentType,
    DurationUnit,
    SignerRole,
    WorkflowStatus,
    WorkflowVariant,
    ReportTemplateKind
)

# Core entities
from .entities import (
    Agreement,
    Amendment,
    AmendmentChecklist,
    FiscalizationReport,
    ReportContent,
    User,
    UserContext
)

# Request models
from .requests import (
    SaveReportRequest,
    SignReportRequest,
    ReportRangeQuery,
    LoginRequest,
    AgreementPath,
    ReportPath,
    AgreementListQuery
)

__all__ = [
    # Base models
    "BaseEntity",

    # Enumerations
    "AgreementKind",
    "ManualStatus",
    "LifecycleStatus",
    "FiscalizationPeriod",
    "AmendmentType",
    "DurationUnit",
    "SignerRole",
    "WorkflowStatus",
    "WorkflowVariant",
    "ReportTemplateKind",

    # Core entities
    "Agreement",
    "Amendment",
    "AmendmentChecklist",
    "FiscalizationReport",
    "ReportContent",
    "User",
    "UserContext",

    # Request models
    "SaveReportRequest",
    "SignReportRequest",
    "ReportRangeQuery",
    "LoginRequest",
    "AgreementPath",
    "ReportPath",
    "AgreementListQuery"
]
