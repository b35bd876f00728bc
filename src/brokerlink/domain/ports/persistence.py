"""Ports for persisting and querying CRM aggregates."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from brokerlink.domain.model import Client, Lead, Policy

if TYPE_CHECKING:
    from collections.abc import Sequence


class UpdateOutcome(StrEnum):
    """Result of a conditional policy link update."""

    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass(slots=True, frozen=True)
class PolicyPage:
    """One page of policies in ascending id order.

    ``next_cursor`` is ``None`` once the scan is exhausted.
    """

    policies: tuple[Policy, ...] = field(default_factory=tuple)
    next_cursor: int | None = None

    @property
    def done(self) -> bool:
        return self.next_cursor is None


@runtime_checkable
class PolicyLinkStore(Protocol):
    """Storage contract consumed by the link reconciliation engine."""

    def get_policies_page(self, cursor: int | None, *, limit: int) -> PolicyPage: ...

    def get_client(self, client_id: int) -> Client | None: ...

    def get_clients_by_lead_id(self, lead_id: int) -> Sequence[Client]: ...

    def update_policy_client_id(
        self,
        policy_id: int,
        new_client_id: int,
        *,
        expected_version: int,
    ) -> UpdateOutcome: ...


@runtime_checkable
class LeadPolicyLookup(Protocol):
    """Optional store extension used when reacting to lead conversion."""

    def get_policies_by_lead_id(self, lead_id: int) -> Sequence[Policy]: ...


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def get(self, entity_id: int) -> TEntity | None: ...


@runtime_checkable
class LeadRepository(Repository[Lead], Protocol):
    """Repository contract for leads."""


@runtime_checkable
class ClientRepository(Repository[Client], Protocol):
    """Repository contract for clients."""


@runtime_checkable
class PolicyRepository(Repository[Policy], Protocol):
    """Repository contract for policies."""


@runtime_checkable
class ReconciliationStore(PolicyLinkStore, LeadPolicyLookup, Protocol):
    """Store offering both the link contract and the lead policy lookup."""
