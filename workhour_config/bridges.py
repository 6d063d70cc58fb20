"""
Bridges from loaded settings to kernel inputs.

The kernel never imports ``workhour_config``; these helpers translate a
``KernelSettings`` into what the kernel accepts (an ``ApprovalPolicy``,
an initialized engine, a configured logger, a clock in the business
timezone).
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from workhour_config.loader import business_zone, log_level
from workhour_config.schema import ApprovalSettings, KernelSettings
from workhour_kernel.db.engine import init_engine_from_url
from workhour_kernel.domain.clock import SystemClock
from workhour_kernel.domain.policy import ApprovalPolicy
from workhour_kernel.logging_config import configure_logging


def build_approval_policy(settings: ApprovalSettings) -> ApprovalPolicy:
    return ApprovalPolicy(
        allow_concurrent_approvers=settings.allow_concurrent_approvers,
        allow_resubmit_after_approval=settings.allow_resubmit_after_approval,
        require_rank_authority=settings.require_rank_authority,
    )


def build_clock(settings: ApprovalSettings) -> SystemClock:
    """System clock whose ``today()`` is the date in ``approval.timezone``."""
    return SystemClock(business_zone(settings))


def bootstrap_kernel(settings: KernelSettings) -> Engine:
    """Configure logging and initialize the engine from ``settings``."""
    configure_logging(level=log_level(settings.logging))
    return init_engine_from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
