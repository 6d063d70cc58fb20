"""
Module: workhour_kernel.models.authority
Responsibility: ORM persistence for approval authority records (rank and
    organization placement per person).

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - One row per email (UNIQUE).
    - rank is one of the five known rank values (CHECK).
    - Level-1 organization code and name are NOT NULL.

Failure modes:
    - IntegrityError on duplicate email (the registry upserts instead).
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from workhour_kernel.db.base import TrackedBase
from workhour_kernel.domain.authority import AuthorityRecord, Rank


class AuthorityModel(TrackedBase):
    """Latest rank and organization of one person, keyed by email."""

    __tablename__ = "approval_authorities"

    __table_args__ = (
        CheckConstraint(
            "rank >= 0 AND rank <= 4",
            name="ck_approval_authorities_valid_rank",
        ),
        Index("ix_approval_authorities_rank", "rank"),
        Index("ix_approval_authorities_org_1", "org_code_1"),
        Index("ix_approval_authorities_org_2", "org_code_2"),
        Index("ix_approval_authorities_org_3", "org_code_3"),
        Index("ix_approval_authorities_org_4", "org_code_4"),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)

    org_code_1: Mapped[str] = mapped_column(String(50), nullable=False)
    org_name_1: Mapped[str] = mapped_column(String(255), nullable=False)
    org_code_2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    org_name_2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    org_code_3: Mapped[str | None] = mapped_column(String(50), nullable=True)
    org_name_3: Mapped[str | None] = mapped_column(String(255), nullable=True)
    org_code_4: Mapped[str | None] = mapped_column(String(50), nullable=True)
    org_name_4: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Authority {self.email} rank={self.rank}>"

    def to_dto(self) -> AuthorityRecord:
        """Convert ORM model to frozen domain DTO."""
        return AuthorityRecord(
            email=self.email,
            display_name=self.display_name,
            rank=Rank(self.rank),
            org_code_1=self.org_code_1,
            org_name_1=self.org_name_1,
            org_code_2=self.org_code_2,
            org_name_2=self.org_name_2,
            org_code_3=self.org_code_3,
            org_name_3=self.org_name_3,
            org_code_4=self.org_code_4,
            org_name_4=self.org_name_4,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply(self, dto: AuthorityRecord) -> None:
        """Overwrite every mutable column from ``dto`` (email is the key)."""
        self.display_name = dto.display_name
        self.rank = dto.rank.value
        for level in (1, 2, 3, 4):
            setattr(self, f"org_code_{level}", dto.org_code(level))
            setattr(self, f"org_name_{level}", dto.org_name(level))

    @classmethod
    def from_dto(cls, dto: AuthorityRecord) -> AuthorityModel:
        """Create ORM model from domain DTO."""
        model = cls(email=dto.email)
        model.apply(dto)
        return model
