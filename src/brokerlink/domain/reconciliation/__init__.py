"""Policy/client link reconciliation.

Flow:
1) ``resolve_policy_link`` decides the link a policy should carry (read-only)
2) ``PolicyLinkSyncHook`` applies that decision right after a policy write
3) ``BatchReconciler`` sweeps all policies and repairs what the hook missed
4) ``LeadConversionListener`` re-runs the hook when a lead becomes a client
"""

from __future__ import annotations

from .batch import DEFAULT_PAGE_SIZE, BatchReconciler, CancellationSignal
from .contracts import AmbiguousLink, ConsistencyReport, LinkDecision, LinkStatus
from .conversion import LeadConversionListener, LeadConverted
from .errors import PolicyEnumerationError, ReconciliationError
from .hook import PolicyLinkSyncHook, SyncOutcome
from .resolve import resolve_policy_link

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "AmbiguousLink",
    "BatchReconciler",
    "CancellationSignal",
    "ConsistencyReport",
    "LeadConversionListener",
    "LeadConverted",
    "LinkDecision",
    "LinkStatus",
    "PolicyEnumerationError",
    "PolicyLinkSyncHook",
    "ReconciliationError",
    "SyncOutcome",
    "resolve_policy_link",
]
