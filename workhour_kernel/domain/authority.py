"""
Approval authority domain types (``workhour_kernel.domain.authority``).

Responsibility
--------------
Pure value objects for the position hierarchy: the ``Rank`` scale, the
``AuthorityRecord`` describing one person's rank and organization
placement, and rank comparison.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Rank is a total order: EMPLOYEE < MANAGER < DEPARTMENT_MANAGER <
  DIVISION_MANAGER < GENERAL_MANAGER.
* Only ranks above EMPLOYEE carry approval authority.
* Level-1 organization code and name are always present on a validated
  record; levels 2-4 are optional.
* ``email`` is stored normalized (lower case, stripped).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from workhour_kernel.domain.identity import require_email
from workhour_kernel.exceptions import ValidationError

MAX_NAME_LENGTH = 255
ORG_LEVELS: tuple[int, ...] = (1, 2, 3, 4)
ORG_PATH_SEPARATOR = " > "


# =========================================================================
# Rank
# =========================================================================


class Rank(int, Enum):
    """Position in the organization, ordered by seniority."""

    EMPLOYEE = 0
    MANAGER = 1
    DEPARTMENT_MANAGER = 2
    DIVISION_MANAGER = 3
    GENERAL_MANAGER = 4

    @property
    def label(self) -> str:
        """Localized display label of the position."""
        return _RANK_LABELS[self]

    @classmethod
    def from_value(cls, value: int) -> Rank:
        try:
            return cls(value)
        except ValueError:
            raise ValidationError("rank", f"unknown rank value: {value!r}") from None

    @classmethod
    def from_label(cls, label: str) -> Rank:
        for rank, text in _RANK_LABELS.items():
            if text == label:
                return rank
        raise ValidationError("rank", f"unknown rank label: {label!r}")

    def has_approval_authority(self) -> bool:
        return self > Rank.EMPLOYEE

    def is_higher_than(self, other: Rank) -> bool:
        return self.value > other.value


_RANK_LABELS: dict[Rank, str] = {
    Rank.EMPLOYEE: "一般社員",
    Rank.MANAGER: "マネージャー",
    Rank.DEPARTMENT_MANAGER: "部長",
    Rank.DIVISION_MANAGER: "本部長",
    Rank.GENERAL_MANAGER: "統括本部長",
}


class RankComparison(str, Enum):
    """Result of comparing two ranks."""

    HIGHER = "higher"
    EQUAL = "equal"
    LOWER = "lower"


def compare_rank(a: Rank, b: Rank) -> RankComparison:
    """Compare ``a`` against ``b``.  Total order; EQUAL iff ``a == b``."""
    if a.value > b.value:
        return RankComparison.HIGHER
    if a.value < b.value:
        return RankComparison.LOWER
    return RankComparison.EQUAL


# =========================================================================
# Authority record
# =========================================================================


@dataclass(frozen=True)
class AuthorityRecord:
    """Latest known rank and organization placement of one person.

    Keyed by ``email``.  No history is kept; the provisioning
    collaborator overwrites the record in place.
    """

    email: str
    display_name: str
    rank: Rank
    org_code_1: str
    org_name_1: str
    org_code_2: str | None = None
    org_name_2: str | None = None
    org_code_3: str | None = None
    org_name_3: str | None = None
    org_code_4: str | None = None
    org_name_4: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        email: str,
        display_name: str,
        rank: Rank,
        org_code_1: str,
        org_name_1: str,
        org_code_2: str | None = None,
        org_name_2: str | None = None,
        org_code_3: str | None = None,
        org_name_3: str | None = None,
        org_code_4: str | None = None,
        org_name_4: str | None = None,
    ) -> AuthorityRecord:
        """Validate input and build a normalized record.

        Raises:
            ValidationError: malformed email, missing/oversized display
                name, missing rank, or missing level-1 organization.
        """
        normalized_email = require_email(email)

        if display_name is None or not display_name.strip():
            raise ValidationError("display_name", "is required")
        display_name = display_name.strip()
        if len(display_name) > MAX_NAME_LENGTH:
            raise ValidationError(
                "display_name", f"must be at most {MAX_NAME_LENGTH} characters"
            )

        if not isinstance(rank, Rank):
            raise ValidationError("rank", "is required")

        if org_code_1 is None or not org_code_1.strip():
            raise ValidationError("org_code_1", "is required")
        if org_name_1 is None or not org_name_1.strip():
            raise ValidationError("org_name_1", "is required")

        return cls(
            email=normalized_email,
            display_name=display_name,
            rank=rank,
            org_code_1=org_code_1.strip(),
            org_name_1=org_name_1.strip(),
            org_code_2=_strip_optional(org_code_2),
            org_name_2=_strip_optional(org_name_2),
            org_code_3=_strip_optional(org_code_3),
            org_name_3=_strip_optional(org_name_3),
            org_code_4=_strip_optional(org_code_4),
            org_name_4=_strip_optional(org_name_4),
        )

    def org_code(self, level: int) -> str | None:
        _require_level(level)
        return getattr(self, f"org_code_{level}")

    def org_name(self, level: int) -> str | None:
        _require_level(level)
        return getattr(self, f"org_name_{level}")

    @property
    def organization_path(self) -> str:
        """Organization names from level 1 downward, e.g. ``"A > B > C"``."""
        return ORG_PATH_SEPARATOR.join(
            name for name in (self.org_name(level) for level in ORG_LEVELS) if name
        )

    @property
    def organization_code_path(self) -> str:
        return ORG_PATH_SEPARATOR.join(
            code for code in (self.org_code(level) for level in ORG_LEVELS) if code
        )

    def has_approval_authority(self) -> bool:
        return self.rank.has_approval_authority()

    def with_rank(self, rank: Rank) -> AuthorityRecord:
        return replace(self, rank=rank)


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _require_level(level: int) -> None:
    if level not in ORG_LEVELS:
        raise ValidationError("level", f"organization level must be 1-4, got {level!r}")
