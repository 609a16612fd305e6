# SPDX-License-Identifier: Apache-2.0

"""
Expiry alerts.

An agreement raises an alert on the days when exactly one of the configured
thresholds separates today from its effective end date. Agreements closed
by a manual override never alert.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .agreements import AgreementView

DEFAULT_ALERT_THRESHOLDS = (180, 150, 120, 90, 60, 30, 7)


@dataclass(frozen=True)
class ExpiryAlert:
    """Alert due today for one agreement."""
    agreement_id: str
    identifier: str
    department: str
    end_date: date
    days_remaining: int
    subject: str


def parse_thresholds(value: Optional[str]) -> Sequence[int]:
    """
    Parse a comma separated threshold list, e.g. "180,90,30".

    Returns:
        Sorted, de-duplicated thresholds in days, descending. The defaults
        when the value is empty.

    Raises:
        ValueError: If an entry is not a positive integer
    """
    if not value or not value.strip():
        return DEFAULT_ALERT_THRESHOLDS

    thresholds = set()
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        days = int(item)
        if days <= 0:
            raise ValueError(f"Alert threshold must be positive: {item}")
        thresholds.add(days)
    return tuple(sorted(thresholds, reverse=True))


def pending_expiry_alerts(
    views: Iterable[AgreementView],
    thresholds: Sequence[int] = DEFAULT_ALERT_THRESHOLDS
) -> List[ExpiryAlert]:
    """
    Alerts due today, closest expiry first.

    Args:
        views: Agreement views built for the current date
        thresholds: Days before the effective end date that trigger an alert

    Returns:
        One ExpiryAlert per agreement hitting a threshold today
    """
    wanted = set(thresholds)
    alerts = []

    for view in views:
        if view.days_remaining is None or view.days_remaining not in wanted:
            continue
        agreement = view.agreement
        alerts.append(ExpiryAlert(
            agreement_id=agreement.id,
            identifier=agreement.identifier,
            department=agreement.department,
            end_date=view.effective_end,
            days_remaining=view.days_remaining,
            subject=agreement.subject
        ))

    return sorted(alerts, key=lambda alert: (alert.days_remaining, alert.identifier))
