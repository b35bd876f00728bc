"""Link resolution for a single policy.

Responsibilities of this stage:
- validate an existing ``client_id`` against the store
- fall back to the lead -> client lookup chain when the link is missing or stale
- classify the policy as OK/REPAIRED/UNRESOLVED/AMBIGUOUS

Out of scope for this stage:
- persisting the decision
- conflict handling for concurrent writers
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .contracts import LinkDecision, LinkStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from brokerlink.domain.model import Client, Policy
    from brokerlink.domain.ports import PolicyLinkStore


def resolve_policy_link(policy: Policy, store: PolicyLinkStore) -> LinkDecision:
    """Compute the client link ``policy`` should carry.

    Matching policy:
    - existing client id that resolves -> ``OK``
    - no usable client id, lead maps to one client -> ``REPAIRED``
    - lead maps to several clients -> ``AMBIGUOUS`` targeting the lowest id
    - nothing resolves -> ``UNRESOLVED``
    """

    if not policy.has_link_keys:
        return LinkDecision(status=LinkStatus.UNRESOLVED, reason="no_link_keys")

    stale_client_id: int | None = None
    if policy.client_id is not None:
        if store.get_client(policy.client_id) is not None:
            return LinkDecision(
                status=LinkStatus.OK,
                client_id=policy.client_id,
                reason="client_exists",
            )
        stale_client_id = policy.client_id

    if policy.lead_id is None:
        return LinkDecision(
            status=LinkStatus.UNRESOLVED,
            stale_client_id=stale_client_id,
            reason="no_link_keys",
        )

    candidate_ids = _candidate_ids(store.get_clients_by_lead_id(policy.lead_id))
    if not candidate_ids:
        return LinkDecision(
            status=LinkStatus.UNRESOLVED,
            stale_client_id=stale_client_id,
            reason="no_client_for_lead",
        )

    if len(candidate_ids) == 1:
        return LinkDecision(
            status=LinkStatus.REPAIRED,
            client_id=candidate_ids[0],
            candidate_ids=candidate_ids,
            stale_client_id=stale_client_id,
            reason="lead_resolved",
        )

    return LinkDecision(
        status=LinkStatus.AMBIGUOUS,
        client_id=candidate_ids[0],
        candidate_ids=candidate_ids,
        stale_client_id=stale_client_id,
        reason="multiple_clients_for_lead",
    )


def _candidate_ids(clients: Iterable[Client]) -> tuple[int, ...]:
    # lowest id wins ties; unsaved clients cannot be link targets
    return tuple(sorted({client.id for client in clients if client.id is not None}))
