"""Shared reconciliation contract components.

This module holds the decision type produced by the resolver and the report
aggregated by batch runs. Neither touches persistence.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum


class LinkStatus(StrEnum):
    """Outcome of resolving one policy's client link."""

    OK = "ok"
    REPAIRED = "repaired"
    UNRESOLVED = "unresolved"
    AMBIGUOUS = "ambiguous"


@dataclass(slots=True, frozen=True, kw_only=True)
class LinkDecision:
    """Target link state for a policy as computed by the resolver."""

    status: LinkStatus
    client_id: int | None = None
    candidate_ids: tuple[int, ...] = ()
    stale_client_id: int | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.status is LinkStatus.UNRESOLVED:
            if self.client_id is not None:
                raise ValueError("Unresolved decision cannot carry a client id")
        elif self.client_id is None:
            raise ValueError(f"{self.status} decision requires a client id")
        if self.status is LinkStatus.AMBIGUOUS and len(self.candidate_ids) < 2:  # noqa: PLR2004
            raise ValueError("Ambiguous decision must include at least two candidates")

    @property
    def requires_write(self) -> bool:
        return self.status in {LinkStatus.REPAIRED, LinkStatus.AMBIGUOUS}

    @property
    def had_dangling_reference(self) -> bool:
        return self.stale_client_id is not None


@dataclass(slots=True, frozen=True, kw_only=True)
class AmbiguousLink:
    """Audit entry for a policy whose lead maps to several clients."""

    policy_id: int
    lead_id: int | None
    candidate_ids: tuple[int, ...]
    chosen_client_id: int


@dataclass(slots=True, kw_only=True)
class ConsistencyReport:
    """Summary of one batch reconciliation pass."""

    already_linked: int = 0
    repaired_via_lead: int = 0
    ambiguous_leads: int = 0
    orphaned: int = 0
    write_conflicts: int = 0
    errors: int = 0
    vanished: int = 0
    dangling_references: int = 0
    scanned: int = 0
    pages: int = 0
    cancelled: bool = False
    ambiguous: list[AmbiguousLink] = field(default_factory=list[AmbiguousLink])

    @property
    def repairs(self) -> int:
        return self.repaired_via_lead + self.ambiguous_leads

    @property
    def is_fixed_point(self) -> bool:
        """True when the pass changed nothing and saw no races."""
        return self.repairs == 0 and self.write_conflicts == 0

    def as_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["repairs"] = self.repairs
        return payload
