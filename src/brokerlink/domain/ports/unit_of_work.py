"""Transactional boundary for CRM writes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from brokerlink.domain.ports.persistence import (
        ClientRepository,
        LeadRepository,
        PolicyRepository,
    )


@dataclass(slots=True)
class CrmRepositories:
    """Repositories sharing one unit of work's session."""

    leads: LeadRepository
    clients: ClientRepository
    policies: PolicyRepository


@runtime_checkable
class CrmUnitOfWork(Protocol):
    """Context-managed write scope; nothing persists until ``commit()``."""

    @property
    def repositories(self) -> CrmRepositories: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
