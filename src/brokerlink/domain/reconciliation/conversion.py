"""Explicit lead-conversion event handling.

Converting a lead into a client is owned by the CRM write path. Once it
commits, it publishes ``LeadConverted`` and the listener re-runs the sync hook
for the lead's policies instead of waiting for the next batch pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from brokerlink.domain.ports import LeadPolicyLookup

    from .hook import PolicyLinkSyncHook


log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class LeadConverted:
    """A lead produced a client record."""

    lead_id: int
    client_id: int


@dataclass(slots=True)
class LeadConversionListener:
    """Attach a converted lead's policies to its new client."""

    policies: LeadPolicyLookup
    hook: PolicyLinkSyncHook

    def on_lead_converted(self, event: LeadConverted) -> int:
        """Return the number of policies whose link was written."""

        try:
            policies = self.policies.get_policies_by_lead_id(event.lead_id)
        except Exception:
            log.exception("Could not list policies for converted lead #%s", event.lead_id)
            return 0

        written = 0
        for policy in policies:
            outcome = self.hook.after_policy_write(policy)
            if outcome.written:
                written += 1

        log.info(
            "Lead #%s converted to client #%s: %s of %s policies relinked",
            event.lead_id,
            event.client_id,
            written,
            len(policies),
        )
        return written
