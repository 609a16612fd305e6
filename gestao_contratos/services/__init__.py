# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .mongodb import MongoDBService, DuplicateDocumentError
from .repositories import (
    AgreementRepository,
    AmendmentRepository,
    FiscalizationRepository,
    UserRepository,
    TransitionConflictError
)
from .auth import AuthService, PasswordVerifier

__all__ = [
    "MongoDBService",
    "DuplicateDocumentError",
    "AgreementRepository",
    "AmendmentRepository",
    "FiscalizationRepository",
    "UserRepository",
    "TransitionConflictError",
    "AuthService",
    "PasswordVerifier"
]
