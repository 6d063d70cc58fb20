"""
workhour_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain settings at runtime.
    No other component reads settings files or environment variables.

Architecture position:
    Configuration -- sits above ``workhour_kernel``.  The kernel MUST NEVER
    import from ``workhour_config``; ``workhour_config.bridges`` translates
    settings into kernel inputs.

Resolution order:
    1. ``path`` argument, when given.
    2. ``WORKHOUR_CONFIG`` environment variable.
    3. The packaged ``defaults/settings.yaml``.
    ``DATABASE_URL``, when set, overrides ``database.url``.

Failure modes:
    - ``FileNotFoundError`` -- the selected document does not exist.
    - ``ValueError`` -- unknown keys, wrong types, missing database URL.

Audit relevance:
    Every successful call logs ``workhour_config_loaded`` with the source
    path and the checksum of the document, so a run can be tied to the
    exact settings that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from workhour_config.loader import load_yaml_file, parse_settings
from workhour_config.schema import (
    ApprovalSettings,
    DatabaseSettings,
    KernelSettings,
    LoggingSettings,
)

_logger = logging.getLogger("workhour_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "settings.yaml"

CONFIG_ENV_VAR = "WORKHOUR_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> KernelSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: Explicit settings document; overrides ``WORKHOUR_CONFIG``.

    Returns:
        Frozen ``KernelSettings``.

    Raises:
        FileNotFoundError: the selected document does not exist.
        ValueError: the document fails validation.
    """
    selected = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_SETTINGS_PATH)
    data = load_yaml_file(selected)
    settings = parse_settings(
        data,
        database_url=os.environ.get(DATABASE_URL_ENV_VAR),
        source=str(selected),
    )

    _logger.info(
        "workhour_config_loaded",
        extra={
            "source": settings.source,
            "checksum": settings.checksum,
            "require_rank_authority": settings.approval.require_rank_authority,
            "allow_concurrent_approvers": settings.approval.allow_concurrent_approvers,
            "timezone": settings.approval.timezone,
        },
    )
    return settings


__all__ = [
    "ApprovalSettings",
    "DatabaseSettings",
    "KernelSettings",
    "LoggingSettings",
    "get_active_config",
]
