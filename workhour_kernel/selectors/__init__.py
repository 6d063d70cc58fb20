"""Read-only query selectors."""

from workhour_kernel.selectors.approval_history_selector import ApprovalHistorySelector
from workhour_kernel.selectors.base import BaseSelector

__all__ = ["ApprovalHistorySelector", "BaseSelector"]
