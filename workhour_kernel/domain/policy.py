"""
Approval policy switches (``workhour_kernel.domain.policy``).

Runtime switches that select between the permissive default workflow and
stricter regimes.  The kernel never reads configuration itself;
``workhour_config.bridges`` builds an ``ApprovalPolicy`` from the loaded
settings and the caller hands it to the services.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ApprovalPolicy:
    """
    Attributes:
        allow_concurrent_approvers: overlapping relationships with different
            approvers may coexist for one subordinate.  When False, creating
            an overlapping relationship is a validation error.
        allow_resubmit_after_approval: an APPROVED record may be sent back
            to PENDING by its submitter.
        require_rank_authority: authorization additionally requires the
            approver to hold a rank above EMPLOYEE in the registry.
    """

    allow_concurrent_approvers: bool = True
    allow_resubmit_after_approval: bool = True
    require_rank_authority: bool = False


DEFAULT_POLICY = ApprovalPolicy()
