# SPDX-License-Identifier: Apache-2.0

"""
Renewal eligibility under the procurement law limits.

Ordinary agreements may run up to 60 months; once an agreement is already
past 60 months the extended 120 month limit applies. Emergency agreements are
capped at 12 months. The advisory is informational text and never blocks a
save.
"""

from dataclasses import dataclass
from datetime import date

from ..models.enums import RenewalOutcome
from .dates import months_elapsed

EMERGENCY_LIMIT_MONTHS = 12
STANDARD_LIMIT_MONTHS = 60
EXTENDED_LIMIT_MONTHS = 120


@dataclass(frozen=True)
class RenewalAdvisory:
    """Renewal figures and the advisory rendered next to the agreement."""
    months_elapsed: int
    limit: int
    remaining: int
    outcome: RenewalOutcome
    message: str


def renewal_limit(elapsed: int, is_emergency: bool) -> int:
    """Statutory limit in months for an agreement with ``elapsed`` months."""
    if is_emergency:
        return EMERGENCY_LIMIT_MONTHS
    return STANDARD_LIMIT_MONTHS if elapsed < STANDARD_LIMIT_MONTHS else EXTENDED_LIMIT_MONTHS


def format_advisory(elapsed: int, limit: int, remaining: int) -> str:
    if remaining > 0:
        return (
            f"JÁ SE PASSARAM {elapsed} MESES. AINDA PODE RENOVAR POR MAIS "
            f"{remaining} MESES (LIMITE DE {limit} MESES)."
        )
    if remaining == 0:
        return f"LIMITE DE {limit} MESES ATINGIDO."
    return f"VIGÊNCIA ATUAL ({elapsed} MESES) EXCEDE O LIMITE PADRÃO DE {limit} MESES."


def assess_renewal(start_date: date, projected_end: date, is_emergency: bool) -> RenewalAdvisory:
    """
    Compute how many more months an agreement may be renewed for.

    Args:
        start_date: Validity start date
        projected_end: End date including every term amendment, concluded or not
        is_emergency: Whether the agreement was an emergency contracting

    Returns:
        RenewalAdvisory with the elapsed months, limit, remaining months and message
    """
    elapsed = months_elapsed(start_date, projected_end)
    limit = renewal_limit(elapsed, is_emergency)
    remaining = limit - elapsed

    if remaining > 0:
        outcome = RenewalOutcome.AVAILABLE
    elif remaining == 0:
        outcome = RenewalOutcome.LIMIT_REACHED
    else:
        outcome = RenewalOutcome.EXCEEDED

    return RenewalAdvisory(
        months_elapsed=elapsed,
        limit=limit,
        remaining=remaining,
        outcome=outcome,
        message=format_advisory(elapsed, limit, remaining)
    )
