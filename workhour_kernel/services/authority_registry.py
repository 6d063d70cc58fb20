"""
AuthorityRegistry -- rank and organization lookup by email.

Responsibility:
    Answers "what rank does this person hold?" and "who belongs to this
    organization unit?" from the approval authority table.  Also the write
    seam through which the provisioning importer maintains that table.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Unknown email is an error for point lookups (``get``, ``get_rank``)
      and a definite False for ``has_approval_authority``.
    - List queries return empty lists rather than errors, ordered by rank
      descending then display name ascending.
    - ``search`` is a case-sensitive substring match on name or email.

Failure modes:
    - AuthorityNotFoundError on an unknown email.
    - ValidationError on an organization level outside 1-4.
"""

from __future__ import annotations

from sqlalchemy import Select, or_, select

from workhour_kernel.domain.authority import (
    ORG_LEVELS,
    AuthorityRecord,
    Rank,
    RankComparison,
    compare_rank,
)
from workhour_kernel.domain.identity import normalize_email
from workhour_kernel.exceptions import AuthorityNotFoundError, ValidationError
from workhour_kernel.logging_config import get_logger
from workhour_kernel.models.authority import AuthorityModel
from workhour_kernel.services.base import BaseService

logger = get_logger("services.authority_registry")


def _registry_order(record: AuthorityRecord) -> tuple[int, str, str]:
    # Code-point order on names, whatever the database collation.
    return (-record.rank.value, record.display_name, record.email)


class AuthorityRegistry(BaseService[AuthorityModel]):
    """Rank/organization registry keyed by email."""

    # ------------------------------------------------------------------
    # Point lookups
    # ------------------------------------------------------------------

    def find(self, email: str) -> AuthorityRecord | None:
        model = self._load(email)
        return model.to_dto() if model is not None else None

    def get(self, email: str) -> AuthorityRecord:
        """Return the record for ``email``.

        Raises:
            AuthorityNotFoundError: email unknown.
        """
        model = self._load(email)
        if model is None:
            raise AuthorityNotFoundError(email)
        return model.to_dto()

    def get_rank(self, email: str) -> Rank:
        return self.get(email).rank

    def exists(self, email: str) -> bool:
        return self._load(email) is not None

    def has_approval_authority(self, email: str) -> bool:
        """True iff ``email`` is known and ranks above EMPLOYEE."""
        record = self.find(email)
        return record is not None and record.rank.has_approval_authority()

    def compare_rank(self, a: Rank | str, b: Rank | str) -> RankComparison:
        """Compare two ranks, resolving emails through the registry.

        Raises:
            AuthorityNotFoundError: an email argument is unknown.
        """
        return compare_rank(self._resolve_rank(a), self._resolve_rank(b))

    # ------------------------------------------------------------------
    # List queries
    # ------------------------------------------------------------------

    def find_by_org_unit(self, level: int, code: str) -> list[AuthorityRecord]:
        """Everyone whose organization code at ``level`` equals ``code``.

        Raises:
            ValidationError: ``level`` not in 1-4.
        """
        if level not in ORG_LEVELS:
            raise ValidationError("level", f"organization level must be 1-4, got {level!r}")
        column = getattr(AuthorityModel, f"org_code_{level}")
        return self._list(select(AuthorityModel).where(column == code))

    def search(self, query: str) -> list[AuthorityRecord]:
        """Case-sensitive substring search on display name or email.

        An empty query returns every record.
        """
        if not query:
            return self.list_all()
        stmt = select(AuthorityModel).where(
            or_(
                AuthorityModel.display_name.contains(query, autoescape=True),
                AuthorityModel.email.contains(query, autoescape=True),
            )
        )
        # LIKE is case-insensitive on some backends; re-check in Python.
        return [
            record
            for record in self._list(stmt)
            if query in record.display_name or query in record.email
        ]

    def list_all(self) -> list[AuthorityRecord]:
        return self._list(select(AuthorityModel))

    def find_by_rank(self, rank: Rank) -> list[AuthorityRecord]:
        return self._list(
            select(AuthorityModel).where(AuthorityModel.rank == rank.value)
        )

    def list_with_approval_authority(self) -> list[AuthorityRecord]:
        return self._list(
            select(AuthorityModel).where(AuthorityModel.rank > Rank.EMPLOYEE.value)
        )

    # ------------------------------------------------------------------
    # Provisioning seam
    # ------------------------------------------------------------------

    def upsert(self, record: AuthorityRecord) -> AuthorityRecord:
        """Insert or overwrite the record for ``record.email``."""
        now = self.clock.now()
        model = self._load(record.email)
        created = model is None
        if model is None:
            model = AuthorityModel.from_dto(record)
            model.created_at = now
            self.session.add(model)
        else:
            model.apply(record)
        model.updated_at = now
        self.session.flush()

        logger.info(
            "authority_record_upserted",
            extra={
                "email": model.email,
                "rank": Rank(model.rank).name,
                "inserted": created,
            },
        )
        return model.to_dto()

    def remove(self, email: str) -> None:
        """Delete the record for ``email``.

        Raises:
            AuthorityNotFoundError: email unknown.
        """
        model = self._load(email)
        if model is None:
            raise AuthorityNotFoundError(email)
        self.session.delete(model)
        self.session.flush()
        logger.info("authority_record_removed", extra={"email": model.email})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self, email: str) -> AuthorityModel | None:
        if email is None:
            return None
        return self.session.execute(
            select(AuthorityModel).where(AuthorityModel.email == normalize_email(email))
        ).scalar_one_or_none()

    def _list(self, stmt: Select) -> list[AuthorityRecord]:
        models = self.session.execute(stmt).scalars().all()
        return sorted((m.to_dto() for m in models), key=_registry_order)

    def _resolve_rank(self, value: Rank | str) -> Rank:
        if isinstance(value, Rank):
            return value
        return self.get_rank(value)
