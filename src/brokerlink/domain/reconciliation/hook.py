"""Best-effort link repair applied right after a policy write commits."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from brokerlink.domain.ports import UpdateOutcome

from .resolve import resolve_policy_link

if TYPE_CHECKING:
    from concurrent.futures import Executor, Future

    from brokerlink.domain.model import Policy
    from brokerlink.domain.ports import PolicyLinkStore

    from .contracts import LinkDecision


log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncOutcome:
    """What the hook did for one policy write."""

    decision: LinkDecision | None
    update: UpdateOutcome | None = None
    failed: bool = False

    @property
    def written(self) -> bool:
        return self.update is UpdateOutcome.SUCCESS


@dataclass(slots=True)
class PolicyLinkSyncHook:
    """Resolve once and issue at most one conditional correction write.

    The hook never raises: the originating write already committed and its
    success must not depend on link repair.
    """

    store: PolicyLinkStore

    def after_policy_write(self, policy: Policy) -> SyncOutcome:
        try:
            return self._sync(policy)
        except Exception:
            log.exception("Link sync failed for policy #%s", policy.id)
            return SyncOutcome(decision=None, failed=True)

    def dispatch(self, policy: Policy, executor: Executor) -> Future[SyncOutcome]:
        """Run :meth:`after_policy_write` detached on ``executor``."""

        return executor.submit(self.after_policy_write, policy)

    def _sync(self, policy: Policy) -> SyncOutcome:
        if policy.id is None:
            raise ValueError("Policy must be persisted before link sync")

        decision = resolve_policy_link(policy, self.store)
        if not decision.requires_write or decision.client_id is None:
            log.debug(
                "Policy #%s needs no link write (%s: %s)",
                policy.id,
                decision.status,
                decision.reason,
            )
            return SyncOutcome(decision=decision)

        update = self.store.update_policy_client_id(
            policy.id,
            decision.client_id,
            expected_version=policy.version,
        )
        if update is UpdateOutcome.SUCCESS:
            log.info(
                "Linked policy #%s to client #%s via lead #%s (%s)",
                policy.id,
                decision.client_id,
                policy.lead_id,
                decision.status,
            )
        else:
            log.info("Skipped link write for policy #%s: %s", policy.id, update)
        return SyncOutcome(decision=decision, update=update)
