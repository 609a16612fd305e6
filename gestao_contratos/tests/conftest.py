# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from gestao_contratos.models.entities import (  # noqa: E402
    Agreement,
    Amendment,
    FiscalizationReport,
    User,
    UserContext
)
from gestao_contratos.models.enums import WorkflowStatus, WorkflowVariant  # noqa: E402
from gestao_contratos.services.auth import AuthService, generate_dev_key_pair  # noqa: E402

TECH_EMAIL = "tecnico@prefeitura.gov.br"
ADMIN_EMAIL = "administrativo@prefeitura.gov.br"
MANAGER_EMAIL = "gestor@prefeitura.gov.br"
TODAY = date(2024, 6, 15)


class FakeVerifier:
    """Credential verifier accepting a single password for everyone."""

    def __init__(self, password: str = "senha-correta"):
        self.password = password
        self.calls = []

    def reauthenticate(self, email: str, credential: str) -> bool:
        self.calls.append((email, credential))
        return credential == self.password


@pytest.fixture(scope="session")
def key_pair():
    """RSA key pair shared by the whole session."""
    return generate_dev_key_pair()


@pytest.fixture(scope="session")
def auth_service(key_pair):
    private_key, public_key = key_pair
    return AuthService(private_key=private_key, public_key=public_key)


@pytest.fixture
def agreement():
    """Monthly-fiscalized service contract with all three signers."""
    return Agreement(
        identifier="80/2018",
        kind="contract",
        category="Prestação de Serviço",
        department="SMS",
        subject="Serviço de limpeza hospitalar",
        supplier="Limpa Tudo Ltda",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        manager=MANAGER_EMAIL,
        technical_overseer=TECH_EMAIL,
        administrative_overseer=ADMIN_EMAIL,
        has_administrative_overseer=True
    )


@pytest.fixture
def agreement_without_admin(agreement):
    return agreement.model_copy(update={
        "administrative_overseer": "",
        "has_administrative_overseer": False
    })


def make_amendment(agreement_id: str, duration, unit, entry_date, concluded: bool, **kwargs) -> Amendment:
    """Term amendment with the witness step set according to ``concluded``."""
    return Amendment(
        agreement_id=agreement_id,
        type="term",
        duration=duration,
        duration_unit=unit,
        entry_date=entry_date,
        checklist={"step8": concluded},
        **kwargs
    )


@pytest.fixture
def amendment_factory():
    return make_amendment


def make_user_context(email: str, user_id: str = None, permissions=None) -> UserContext:
    return UserContext(
        user_id=user_id or email.split("@")[0],
        email=email,
        name=email.split("@")[0].title(),
        department="SMS",
        permissions=permissions or []
    )


@pytest.fixture
def technical_user():
    return make_user_context(TECH_EMAIL)


@pytest.fixture
def administrative_user():
    return make_user_context(ADMIN_EMAIL)


@pytest.fixture
def manager_user():
    return make_user_context(MANAGER_EMAIL, permissions=["agreement:edit"])


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def report(agreement):
    """Report awaiting the technical signature."""
    return FiscalizationReport(
        agreement_id=agreement.id,
        reference_month="2024-05",
        status=WorkflowStatus.PENDING_TECHNICAL,
        workflow=WorkflowVariant.WITH_ADMINISTRATIVE_STEP,
        technical_name=TECH_EMAIL,
        administrative_name=ADMIN_EMAIL,
        manager_name=MANAGER_EMAIL
    )


@pytest.fixture
def signed_at():
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def stored_user(auth_service):
    """Active user whose password is 'senha-correta'."""
    return User(
        email=TECH_EMAIL,
        name="Fiscal Técnico",
        password_hash=auth_service.hash_password("senha-correta"),
        department="SMS",
        permissions=["report:sign"]
    )


@pytest.fixture
def app(auth_service):
    """Application wired to mocked storage, with a fixed clock."""
    from gestao_contratos.app import create_app

    application = create_app(
        config={
            'ENVIRONMENT': 'test',
            'OTEL_ENABLED': False,
            'DOCS_ENABLED': False,
            'CREATE_INDEXES': False,
            'BASE_URL': 'https://api.test'
        },
        mongodb_service=MagicMock(),
        auth_service=auth_service
    )
    application.config['TESTING'] = True
    application.agreement_repository = MagicMock()
    application.amendment_repository = MagicMock()
    application.fiscalization_repository = MagicMock()
    application.credential_verifier = MagicMock()
    application.clock = lambda: TODAY
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def token_for(auth_service):
    """Build an Authorization header for a user e-mail."""
    def build(email: str, permissions=None):
        user = User(
            email=email,
            name=email.split("@")[0],
            password_hash="unused",
            department="SMS",
            permissions=permissions or []
        )
        tokens = auth_service.generate_tokens(user)
        return {"Authorization": f"Bearer {tokens['access_token']}"}
    return build
