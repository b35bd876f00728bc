"""CRM entities that take part in policy/client linking.

Identifiers are assigned by the store, so freshly built entities carry
``id=None`` until they are persisted.
"""

from __future__ import annotations

from dataclasses import dataclass

from brokerlink.domain.model.enums import LeadStatus

INITIAL_VERSION = 1


@dataclass(eq=False, kw_only=True)
class Lead:
    """A prospect that may later convert into one or more clients."""

    id: int | None = None
    first_name: str
    last_name: str | None = None
    email: str | None = None
    status: LeadStatus = LeadStatus.NEW


@dataclass(eq=False, kw_only=True)
class Client:
    """Durable account entity, optionally pointing back at its source lead."""

    id: int | None = None
    name: str
    email: str
    lead_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Policy:
    """Insurance contract that should end up referencing exactly one client.

    ``version`` is the optimistic-concurrency marker: every committed write
    bumps it, and conditional link updates compare against it.
    """

    id: int | None = None
    policy_number: str
    carrier: str | None = None
    client_id: int | None = None
    lead_id: int | None = None
    version: int = INITIAL_VERSION

    @property
    def has_link_keys(self) -> bool:
        return self.client_id is not None or self.lead_id is not None
