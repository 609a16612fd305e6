# SPDX-License-Identifier: Apache-2.0

"""
Amendment chain resolution.

Term amendments extend an agreement's end date one after the other, in entry
date order. Two chains are folded from the original end date:

* projected: every term amendment, concluded or not;
* confirmed: only term amendments whose witness signature (step 8) is done.

Unconcluded amendments are skipped in place in the confirmed chain, and the
fold keeps going with the later concluded ones. Because month arithmetic
clamps at the end of the month, this can differ from applying only the first
N concluded amendments. The current rule determines legally effective dates
and is kept as is until the legal department rules otherwise.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from ..models.entities import Amendment
from ..models.enums import AmendmentType
from .dates import add_duration

CLOSED_AMENDMENT_STATUSES = frozenset({"CONCLUÍDO", "CANCELADO"})


@dataclass(frozen=True)
class AmendmentChain:
    """Confirmed and projected end dates of an agreement."""
    original_end: date
    confirmed_end: date
    projected_end: date

    @property
    def is_pending(self) -> bool:
        """Term amendments under review would move the end date."""
        return self.confirmed_end != self.projected_end


def order_amendments(amendments: Iterable[Amendment]) -> List[Amendment]:
    """Order amendments by entry date ascending; undated ones keep their order at the end."""
    return sorted(
        amendments,
        key=lambda amendment: (amendment.entry_date is None, amendment.entry_date or date.min)
    )


def term_amendments(amendments: Iterable[Amendment]) -> List[Amendment]:
    return [a for a in order_amendments(amendments) if a.type == AmendmentType.TERM]


def fold_end_date(original_end: date, amendments: Iterable[Amendment]) -> date:
    """Apply each amendment's duration to the running end date."""
    running = original_end
    for amendment in amendments:
        running = add_duration(running, amendment.duration, amendment.duration_unit)
    return running


def resolve_end_dates(original_end: date, amendments: Iterable[Amendment]) -> AmendmentChain:
    """
    Compute the confirmed and projected end dates of an agreement.

    Args:
        original_end: End date registered on the agreement
        amendments: Amendments of the agreement, any type and order

    Returns:
        AmendmentChain with both end dates
    """
    terms = term_amendments(amendments)
    projected = fold_end_date(original_end, terms)
    confirmed = fold_end_date(original_end, [a for a in terms if a.is_concluded()])

    return AmendmentChain(
        original_end=original_end,
        confirmed_end=confirmed,
        projected_end=projected
    )


def active_amendment_status(amendments: Iterable[Amendment]) -> Optional[str]:
    """
    Status label of the amendment currently in progress, if any.

    The first amendment (in entry order) not closed as concluded or cancelled
    is the one shown on agreement listings.
    """
    for amendment in order_amendments(amendments):
        if amendment.status not in CLOSED_AMENDMENT_STATUSES:
            return amendment.status
    return None
