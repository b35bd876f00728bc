"""In-memory link store fake for reconciliation tests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from brokerlink.domain.model import Client, Policy
from brokerlink.domain.ports import PolicyPage, UpdateOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence


class StoreUnavailableError(ConnectionError):
    """Simulated transient storage failure."""


BeforeUpdateHook = Callable[[int], None]


class InMemoryLinkStore:
    """Versioned policy/client store mirroring the SQLAlchemy adapter semantics.

    Reads hand out copies, so callers only observe writes by reading again.
    """

    def __init__(
        self,
        *,
        clients: Sequence[Client] = (),
        policies: Sequence[Policy] = (),
    ) -> None:
        self.clients: dict[int, Client] = {}
        self.policies: dict[int, Policy] = {}
        self.writes: list[tuple[int, int]] = []
        self.page_requests: list[tuple[int | None, int]] = []
        self.failing_client_lookups: set[int] = set()
        self.failing_lead_lookups: set[int] = set()
        self.fail_pages_after: int | None = None
        self.before_update: BeforeUpdateHook | None = None
        for client in clients:
            self.add_client(client)
        for policy in policies:
            self.add_policy(policy)

    def add_client(self, client: Client) -> Client:
        if client.id is None:
            client.id = max(self.clients, default=0) + 1
        self.clients[client.id] = client
        return client

    def add_policy(self, policy: Policy) -> Policy:
        if policy.id is None:
            policy.id = max(self.policies, default=100) + 1
        self.policies[policy.id] = replace(policy)
        return replace(policy)

    def delete_policy(self, policy_id: int) -> None:
        del self.policies[policy_id]

    def edit_policy(self, policy_id: int, **changes: int | None) -> Policy:
        """Simulate a user write: apply ``changes`` and bump the version."""

        current = self.policies[policy_id]
        updated = replace(current, version=current.version + 1, **changes)
        self.policies[policy_id] = updated
        return replace(updated)

    def policy(self, policy_id: int) -> Policy:
        return replace(self.policies[policy_id])

    # PolicyLinkStore ------------------------------------------------------------

    def get_policies_page(self, cursor: int | None, *, limit: int) -> PolicyPage:
        self.page_requests.append((cursor, limit))
        if self.fail_pages_after is not None and len(self.page_requests) > self.fail_pages_after:
            raise StoreUnavailableError("policy table unavailable")
        ids = sorted(pid for pid in self.policies if cursor is None or pid > cursor)[:limit]
        policies = tuple(replace(self.policies[pid]) for pid in ids)
        next_cursor = ids[-1] if len(ids) == limit else None
        return PolicyPage(policies=policies, next_cursor=next_cursor)

    def get_client(self, client_id: int) -> Client | None:
        if client_id in self.failing_client_lookups:
            raise StoreUnavailableError(f"client #{client_id} unavailable")
        return self.clients.get(client_id)

    def get_clients_by_lead_id(self, lead_id: int) -> Sequence[Client]:
        if lead_id in self.failing_lead_lookups:
            raise StoreUnavailableError(f"lead #{lead_id} lookup unavailable")
        return [client for client in self.clients.values() if client.lead_id == lead_id]

    def update_policy_client_id(
        self,
        policy_id: int,
        new_client_id: int,
        *,
        expected_version: int,
    ) -> UpdateOutcome:
        if self.before_update is not None:
            self.before_update(policy_id)
        current = self.policies.get(policy_id)
        if current is None:
            return UpdateOutcome.NOT_FOUND
        if current.version != expected_version:
            return UpdateOutcome.CONFLICT
        self.policies[policy_id] = replace(
            current,
            client_id=new_client_id,
            version=current.version + 1,
        )
        self.writes.append((policy_id, new_client_id))
        return UpdateOutcome.SUCCESS

    # LeadPolicyLookup -----------------------------------------------------------

    def get_policies_by_lead_id(self, lead_id: int) -> Sequence[Policy]:
        return [
            replace(policy)
            for _pid, policy in sorted(self.policies.items())
            if policy.lead_id == lead_id
        ]


def make_client(client_id: int, *, lead_id: int | None = None) -> Client:
    return Client(
        id=client_id,
        name=f"Client {client_id}",
        email=f"client{client_id}@example.com",
        lead_id=lead_id,
    )


def make_policy(
    policy_id: int,
    *,
    client_id: int | None = None,
    lead_id: int | None = None,
    version: int = 1,
) -> Policy:
    return Policy(
        id=policy_id,
        policy_number=f"POL-{policy_id:05d}",
        carrier="Test Insurance Co",
        client_id=client_id,
        lead_id=lead_id,
        version=version,
    )
