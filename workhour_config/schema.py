"""
Runtime settings schema.

The YAML settings document is parsed into these frozen dataclasses by
``workhour_config.loader``.  ``KernelSettings`` is the only artifact the
rest of the system sees.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 5


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class ApprovalSettings:
    """Workflow switches; see ``workhour_kernel.domain.policy.ApprovalPolicy``."""

    allow_concurrent_approvers: bool = True
    allow_resubmit_after_approval: bool = True
    require_rank_authority: bool = False
    # IANA name; "today" and create_for_dates windows follow this zone
    timezone: str = "UTC"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KernelSettings:
    """Complete runtime settings, with the checksum of the source document."""

    database: DatabaseSettings
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    approval: ApprovalSettings = field(default_factory=ApprovalSettings)
    checksum: str = ""
    source: str | None = None
