"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    ClientRepository,
    LeadPolicyLookup,
    LeadRepository,
    PolicyLinkStore,
    PolicyPage,
    PolicyRepository,
    ReconciliationStore,
    Repository,
    UpdateOutcome,
)
from .unit_of_work import CrmRepositories, CrmUnitOfWork

__all__ = [
    "ClientRepository",
    "CrmRepositories",
    "CrmUnitOfWork",
    "LeadPolicyLookup",
    "LeadRepository",
    "PolicyLinkStore",
    "PolicyPage",
    "PolicyRepository",
    "ReconciliationStore",
    "Repository",
    "UpdateOutcome",
]
