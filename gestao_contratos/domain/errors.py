# SPDX-License-Identifier: Apache-2.0

"""
Domain errors raised by the fiscalization workflow.

Every error leaves the report untouched; callers decide whether to prompt
the user again or abandon the action.
"""

from typing import Optional

from ..models.enums import SignerRole


class WorkflowError(Exception):
    """Base class for fiscalization workflow failures."""

    error_type = "workflow-error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OutOfTurnError(WorkflowError):
    """Raised when a role signs while another role is awaited."""

    error_type = "out-of-turn"

    def __init__(self, attempted_role: str, awaited_role: Optional[str]):
        self.attempted_role = attempted_role
        self.awaited_role = awaited_role
        awaited_label = SignerRole(awaited_role).label if awaited_role else "-"
        super().__init__(f"Ação não permitida. Aguardando assinatura de {awaited_label}.")


class ReportCompletedError(WorkflowError):
    """Raised when signing a report that already reached its final state."""

    error_type = "report-completed"

    def __init__(self):
        super().__init__("Este relatório já foi concluído.")


class ReauthenticationError(WorkflowError):
    """Raised when the signer's credential does not re-authenticate them."""

    error_type = "reauthentication-failed"

    def __init__(self, message: str = "Senha incorreta. A assinatura não pode ser realizada."):
        super().__init__(message)


class ReportLockedError(WorkflowError):
    """Raised when editing report content outside the technical step or by another user."""

    error_type = "report-locked"

    def __init__(self, message: str = "O conteúdo do relatório não pode mais ser alterado."):
        super().__init__(message)


class InvalidReferenceMonthError(WorkflowError):
    """Raised for reference months not in the YYYY-MM format."""

    error_type = "invalid-reference-month"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Mês de referência inválido: {value!r}. Use o formato AAAA-MM.")
