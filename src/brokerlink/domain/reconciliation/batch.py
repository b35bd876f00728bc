"""Paginated batch repair of policy/client links.

Each policy is handled as its own short read-then-maybe-write step, so a run
never blocks live writers. Writes are conditional on the version read in this
pass; losing that race is a benign conflict that the next run re-evaluates.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from brokerlink.domain.ports import UpdateOutcome

from .contracts import AmbiguousLink, ConsistencyReport, LinkStatus
from .errors import PolicyEnumerationError
from .resolve import resolve_policy_link

if TYPE_CHECKING:
    from brokerlink.domain.model import Policy
    from brokerlink.domain.ports import PolicyLinkStore, PolicyPage

DEFAULT_PAGE_SIZE = 200

log = getLogger(__name__)


class CancellationSignal(Protocol):
    """Anything that can report cancellation, e.g. ``threading.Event``."""

    def is_set(self) -> bool: ...


@dataclass(slots=True)
class BatchReconciler:
    """Scan every policy and repair links the sync hook missed."""

    store: PolicyLinkStore

    def run(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        *,
        cancel: CancellationSignal | None = None,
    ) -> ConsistencyReport:
        """Run one full pass and return its report.

        Raises ``PolicyEnumerationError`` when a page cannot be listed.
        """

        if page_size < 1:
            raise ValueError("Page size must be positive")

        report = ConsistencyReport()
        cursor: int | None = None
        log.info("Starting policy link reconciliation: page_size=%s", page_size)

        while True:
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                log.info("Reconciliation cancelled after %s pages", report.pages)
                break

            page = self._fetch_page(cursor, page_size)
            report.pages += 1
            for policy in page.policies:
                self._reconcile_policy(policy, report)

            if page.done:
                break
            if page.next_cursor == cursor:
                raise PolicyEnumerationError(
                    f"Policy pagination did not advance past cursor {cursor}",
                    cursor=cursor,
                )
            cursor = page.next_cursor

        log.info(
            "Finished policy link reconciliation: scanned=%s, linked=%s, repaired=%s, "
            "ambiguous=%s, orphaned=%s, conflicts=%s, errors=%s",
            report.scanned,
            report.already_linked,
            report.repaired_via_lead,
            report.ambiguous_leads,
            report.orphaned,
            report.write_conflicts,
            report.errors,
        )
        return report

    def _fetch_page(self, cursor: int | None, page_size: int) -> PolicyPage:
        try:
            return self.store.get_policies_page(cursor, limit=page_size)
        except Exception as exc:
            raise PolicyEnumerationError(
                f"Unable to list policies after cursor {cursor}",
                cursor=cursor,
            ) from exc

    def _reconcile_policy(self, policy: Policy, report: ConsistencyReport) -> None:
        report.scanned += 1
        try:
            self._apply(policy, report)
        except Exception:
            report.errors += 1
            log.exception("Error reconciling policy #%s", policy.id)

    def _apply(self, policy: Policy, report: ConsistencyReport) -> None:
        if policy.id is None:
            raise ValueError("Listed policy has no id")

        decision = resolve_policy_link(policy, self.store)
        if decision.had_dangling_reference:
            report.dangling_references += 1
            log.warning(
                "Policy #%s references missing client #%s",
                policy.id,
                decision.stale_client_id,
            )

        if decision.status is LinkStatus.OK:
            report.already_linked += 1
            return

        if decision.status is LinkStatus.UNRESOLVED or decision.client_id is None:
            report.orphaned += 1
            log.debug("Policy #%s is orphaned (%s)", policy.id, decision.reason)
            return

        update = self.store.update_policy_client_id(
            policy.id,
            decision.client_id,
            expected_version=policy.version,
        )
        if update is UpdateOutcome.CONFLICT:
            report.write_conflicts += 1
            log.info("Policy #%s changed during reconciliation; skipped", policy.id)
            return
        if update is UpdateOutcome.NOT_FOUND:
            report.vanished += 1
            log.info("Policy #%s was deleted during reconciliation", policy.id)
            return

        if decision.status is LinkStatus.AMBIGUOUS:
            report.ambiguous_leads += 1
            report.ambiguous.append(
                AmbiguousLink(
                    policy_id=policy.id,
                    lead_id=policy.lead_id,
                    candidate_ids=decision.candidate_ids,
                    chosen_client_id=decision.client_id,
                )
            )
            log.warning(
                "Lead #%s maps to clients %s; linked policy #%s to client #%s",
                policy.lead_id,
                list(decision.candidate_ids),
                policy.id,
                decision.client_id,
            )
            return

        report.repaired_via_lead += 1
        log.info(
            "Linked policy #%s to client #%s via lead #%s",
            policy.id,
            decision.client_id,
            policy.lead_id,
        )
