"""Public domain model surface."""

from __future__ import annotations

from brokerlink.domain.model.crm import INITIAL_VERSION, Client, Lead, Policy
from brokerlink.domain.model.enums import LeadStatus

__all__ = [
    "INITIAL_VERSION",
    "Client",
    "Lead",
    "LeadStatus",
    "Policy",
]
