# SPDX-License-Identifier: Apache-2.0

"""
Agreement lifecycle status derivation.

Status and days-remaining are derived on every read from the effective end
date; they are never persisted.
"""

from datetime import date
from typing import Optional, Union

from ..models.enums import LifecycleStatus, ManualStatus
from .dates import days_between

WARNING_WINDOW_DAYS = 30

_OVERRIDES = {
    ManualStatus.EXECUTED: LifecycleStatus.EXECUTED,
    ManualStatus.RESCINDED: LifecycleStatus.RESCINDED,
}


def derive_status(
    start_date: Optional[date],
    effective_end: date,
    manual_status: Union[ManualStatus, str, None],
    today: date
) -> LifecycleStatus:
    """
    Derive the lifecycle status of an agreement.

    Args:
        start_date: Validity start date (kept for signature symmetry with renewal)
        effective_end: End date after confirmed amendments
        manual_status: Manual override; executed/rescinded win unconditionally
        today: Current date

    Returns:
        LifecycleStatus for the agreement
    """
    if manual_status:
        override = _OVERRIDES.get(ManualStatus(manual_status))
        if override is not None:
            return override

    remaining = days_between(today, effective_end)
    if remaining < 0:
        return LifecycleStatus.EXPIRED
    if remaining <= WARNING_WINDOW_DAYS:
        return LifecycleStatus.WARNING
    return LifecycleStatus.ACTIVE


def compute_days_remaining(
    effective_end: date,
    status: Union[LifecycleStatus, str],
    today: date
) -> Optional[int]:
    """
    Days until the effective end date.

    Returns None when the status is terminal, where the figure has no meaning.
    """
    if LifecycleStatus(status).is_terminal:
        return None
    return days_between(today, effective_end)


def is_active(status: Union[LifecycleStatus, str]) -> bool:
    return not LifecycleStatus(status).is_terminal
