# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Repositories translating stored documents to domain models.

Documents use camelCase keys at the top level, as written by the legacy
importer. Calendar dates are stored as UTC midnight datetimes since BSON has
no date-only type.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Type

from opentelemetry import trace
from pydantic import BaseModel

from ..models.entities import Agreement, Amendment, FiscalizationReport, User
from ..models.enums import WorkflowStatus
from .mongodb import (
    AGREEMENTS,
    AMENDMENTS,
    FISCALIZATION_REPORTS,
    USERS,
    DuplicateDocumentError,
    MongoDBService
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TransitionConflictError(Exception):
    """Report status changed in storage since it was read."""

    error_type = "transition-conflict"

    def __init__(self, report_id: str, expected_status: str):
        self.report_id = report_id
        self.expected_status = expected_status
        self.message = "O relatório foi alterado por outro usuário. Recarregue e tente novamente."
        super().__init__(self.message)


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_snake(name: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in name)


class BaseRepository:
    """Document mapping shared by all repositories."""

    collection: str = ""
    model: Type[BaseModel] = BaseModel
    date_fields: tuple = ()

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb_service = mongodb_service

    def to_document(self, entity: BaseModel) -> Dict[str, Any]:
        data = entity.model_dump(mode="python")
        document = {}
        for key, value in data.items():
            if key in self.date_fields and isinstance(value, date) and not isinstance(value, datetime):
                value = datetime.combine(value, time.min, tzinfo=timezone.utc)
            document[to_camel(key)] = value
        return document

    def from_document(self, document: Dict[str, Any]) -> BaseModel:
        data = {}
        for key, value in document.items():
            field = key if key == "id" else to_snake(key)
            if field in self.date_fields and isinstance(value, datetime):
                value = value.date()
            data[field] = value
        return self.model(**data)

    def get(self, entity_id: str) -> Optional[BaseModel]:
        document = self.mongodb_service.find_by_id(self.collection, entity_id)
        return self.from_document(document) if document else None


class AgreementRepository(BaseRepository):
    """Agreements (contracts and minutes)."""

    collection = AGREEMENTS
    model = Agreement
    date_fields = ("start_date", "end_date")

    def list_all(self) -> List[Agreement]:
        documents = self.mongodb_service.find(self.collection, sort=[("endDate", 1)])
        return [self.from_document(doc) for doc in documents]


class AmendmentRepository(BaseRepository):
    """Amendments, returned in entry date order."""

    collection = AMENDMENTS
    model = Amendment
    date_fields = ("entry_date",)

    def list_for_agreement(self, agreement_id: str) -> List[Amendment]:
        documents = self.mongodb_service.find(
            self.collection,
            {"agreementId": agreement_id},
            sort=[("entryDate", 1), ("_id", 1)]
        )
        return [self.from_document(doc) for doc in documents]

    def list_by_agreement(self, agreement_ids: List[str]) -> Dict[str, List[Amendment]]:
        """Amendments grouped by agreement ID, in one query."""
        grouped: Dict[str, List[Amendment]] = {agreement_id: [] for agreement_id in agreement_ids}
        documents = self.mongodb_service.find(
            self.collection,
            {"agreementId": {"$in": list(agreement_ids)}},
            sort=[("entryDate", 1), ("_id", 1)]
        )
        for document in documents:
            amendment = self.from_document(document)
            grouped.setdefault(amendment.agreement_id, []).append(amendment)
        return grouped


class FiscalizationRepository(BaseRepository):
    """Fiscalization reports, at most one per agreement and reference month."""

    collection = FISCALIZATION_REPORTS
    model = FiscalizationReport

    def find_by_month(self, agreement_id: str, reference_month: str) -> Optional[FiscalizationReport]:
        document = self.mongodb_service.find_one(
            self.collection,
            {"agreementId": agreement_id, "referenceMonth": reference_month}
        )
        return self.from_document(document) if document else None

    def list_for_agreement(
        self,
        agreement_id: str,
        start_month: Optional[str] = None,
        end_month: Optional[str] = None
    ) -> List[FiscalizationReport]:
        """Reports of an agreement within an optional month range, newest first."""
        query: Dict[str, Any] = {"agreementId": agreement_id}
        month_range = {}
        if start_month:
            month_range["$gte"] = start_month
        if end_month:
            month_range["$lte"] = end_month
        if month_range:
            query["referenceMonth"] = month_range

        documents = self.mongodb_service.find(self.collection, query, sort=[("referenceMonth", -1)])
        return [self.from_document(doc) for doc in documents]

    def insert(self, report: FiscalizationReport) -> FiscalizationReport:
        """
        Store a new report.

        Raises:
            TransitionConflictError: If another report already exists for the month
        """
        try:
            self.mongodb_service.insert(self.collection, self.to_document(report))
        except DuplicateDocumentError:
            raise TransitionConflictError(report.id, WorkflowStatus(report.status).value)
        return report

    def save_content(self, report: FiscalizationReport, previous_status: str) -> FiscalizationReport:
        """Persist content changes while the report is still at ``previous_status``."""
        return self._compare_and_set(report, previous_status, ("content", "updated_at", "updated_by"))

    def commit_transition(self, report: FiscalizationReport, previous_status: str) -> FiscalizationReport:
        """
        Persist a signature, provided the stored status is still ``previous_status``.

        Args:
            report: Signed report returned by the workflow
            previous_status: Status the report had when it was read

        Returns:
            The stored report

        Raises:
            TransitionConflictError: If the stored status changed meanwhile
        """
        with tracer.start_as_current_span(
            "fiscalization.commit_transition",
            attributes={
                "report.id": report.id,
                "report.previous_status": WorkflowStatus(previous_status).value,
                "report.status": WorkflowStatus(report.status).value
            }
        ):
            return self._compare_and_set(report, previous_status, None)

    def _compare_and_set(self, report: FiscalizationReport, previous_status: str, fields) -> FiscalizationReport:
        expected = WorkflowStatus(previous_status).value
        document = self.to_document(report)
        document.pop("id", None)
        if fields is not None:
            wanted = {to_camel(field) for field in fields}
            document = {key: value for key, value in document.items() if key in wanted}

        matched = self.mongodb_service.update_where(
            self.collection,
            {
                "_id": self.mongodb_service.to_object_id(report.id),
                "status": expected
            },
            document
        )
        if not matched:
            logger.warning(
                "Report changed concurrently",
                extra={"report_id": report.id, "expected_status": expected}
            )
            raise TransitionConflictError(report.id, expected)
        return report


class UserRepository(BaseRepository):
    """Platform users."""

    collection = USERS
    model = User

    def find_by_email(self, email: str) -> Optional[User]:
        document = self.mongodb_service.find_one(self.collection, {"email": email.strip().lower()})
        return self.from_document(document) if document else None
