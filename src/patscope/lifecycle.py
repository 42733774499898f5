"""Patent lifecycle status table.

The status of the patent that owns a claim set moves through a fixed state
machine:

    filed -> published -> granted -> expired
      |         |            |
      +---------+--> abandoned  +--> revoked

Transitions not listed in ALLOWED_TRANSITIONS are rejected.
"""

import logging
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Union

from patscope.errors import ValidationError

logger = logging.getLogger(__name__)


class PatentStatus(str, Enum):
    """Legal status of a patent."""
    FILED = "filed"
    PUBLISHED = "published"
    GRANTED = "granted"
    EXPIRED = "expired"
    ABANDONED = "abandoned"
    REVOKED = "revoked"


class Jurisdiction(str, Enum):
    """Patent offices with a known term."""
    US = "US"  # United States
    EP = "EP"  # European Patent Office
    WO = "WO"  # WIPO PCT
    JP = "JP"  # Japan
    CN = "CN"  # China
    KR = "KR"  # South Korea
    OTHER = "OTHER"


ALLOWED_TRANSITIONS: Mapping[PatentStatus, FrozenSet[PatentStatus]] = MappingProxyType({
    PatentStatus.FILED: frozenset({PatentStatus.PUBLISHED, PatentStatus.ABANDONED}),
    PatentStatus.PUBLISHED: frozenset({PatentStatus.GRANTED, PatentStatus.ABANDONED}),
    PatentStatus.GRANTED: frozenset({PatentStatus.EXPIRED, PatentStatus.REVOKED}),
    PatentStatus.EXPIRED: frozenset(),
    PatentStatus.REVOKED: frozenset(),
    PatentStatus.ABANDONED: frozenset(),
})

# Term from filing date, in years
PATENT_LIFESPAN_YEARS: Mapping[Jurisdiction, int] = MappingProxyType({
    Jurisdiction.US: 20,
    Jurisdiction.EP: 20,
    Jurisdiction.WO: 20,
    Jurisdiction.JP: 20,
    Jurisdiction.CN: 20,
    Jurisdiction.KR: 20,
})
DEFAULT_LIFESPAN_YEARS = 20


def is_terminal(status: PatentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[PatentStatus(status)]


def transition(
    current: Union[PatentStatus, str],
    target: Union[PatentStatus, str],
) -> PatentStatus:
    """Validate a status change and return the new status.

    Raises:
        ValidationError: If either status is unknown or the move is not
            allowed from `current`.
    """
    try:
        current = PatentStatus(current)
        target = PatentStatus(target)
    except ValueError as e:
        raise ValidationError(f"unknown patent status: {e}", field="status") from None

    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(
            f"illegal status transition {current.value} -> {target.value}",
            field="status", value=target.value,
        )
    logger.debug(f"Patent status {current.value} -> {target.value}")
    return target


def calculate_expiry_date(
    filing_date: date,
    jurisdiction: Union[Jurisdiction, str] = Jurisdiction.OTHER,
) -> date:
    """Nominal expiry date: filing date plus the jurisdiction's term.

    A 29 February filing date expires on 28 February.
    """
    try:
        jurisdiction = Jurisdiction(jurisdiction)
    except ValueError:
        jurisdiction = Jurisdiction.OTHER
    years = PATENT_LIFESPAN_YEARS.get(jurisdiction, DEFAULT_LIFESPAN_YEARS)
    try:
        return filing_date.replace(year=filing_date.year + years)
    except ValueError:
        return filing_date.replace(year=filing_date.year + years, day=28)
