"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from brokerlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCrmUnitOfWork,
    build_policy_link_store,
    is_started,
    startup,
)
from brokerlink.config import get_reconciliation_config
from brokerlink.domain.ports import CrmUnitOfWork
from brokerlink.domain.reconciliation import (
    BatchReconciler,
    LeadConversionListener,
    LeadConverted,
    PolicyLinkSyncHook,
)

if TYPE_CHECKING:
    from brokerlink.domain.model import Policy
    from brokerlink.domain.ports import PolicyLinkStore, ReconciliationStore
    from brokerlink.domain.reconciliation import (
        CancellationSignal,
        ConsistencyReport,
        SyncOutcome,
    )

UnitOfWorkFactory = Callable[[], CrmUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_sync_hook(*, store: PolicyLinkStore | None = None) -> PolicyLinkSyncHook:
    """Return a sync hook bound to ``store`` or the configured database."""

    if store is None:
        _ensure_started()
        store = build_policy_link_store()
    return PolicyLinkSyncHook(store)


def record_policy_write(
    policy: Policy,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    hook: PolicyLinkSyncHook | None = None,
) -> SyncOutcome:
    """Commit a policy create/update, then run the link sync hook on it.

    The commit is the caller's transactional guarantee; link repair afterwards is
    best-effort and never turns a successful write into a failure.
    """

    if unit_of_work_factory is None:
        _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyCrmUnitOfWork
    with effective_uow() as uow:
        uow.repositories.policies.add(policy)
        uow.commit()
    log.debug("Committed policy #%s (version %s)", policy.id, policy.version)

    return (hook or build_sync_hook()).after_policy_write(policy)


def reconcile_policy_links(
    *,
    store: PolicyLinkStore | None = None,
    page_size: int | None = None,
    cancel: CancellationSignal | None = None,
) -> ConsistencyReport:
    """Run one batch reconciliation pass over all policies."""

    if store is None:
        _ensure_started()
        store = build_policy_link_store()
    effective_page_size = page_size or get_reconciliation_config().page_size
    log.info("Starting batch reconciliation: page_size=%s", effective_page_size)
    return BatchReconciler(store).run(effective_page_size, cancel=cancel)


def handle_lead_converted(
    lead_id: int,
    client_id: int,
    *,
    store: ReconciliationStore | None = None,
) -> int:
    """Relink the converted lead's policies; returns how many were written."""

    if store is None:
        _ensure_started()
        store = build_policy_link_store()
    listener = LeadConversionListener(policies=store, hook=PolicyLinkSyncHook(store))
    return listener.on_lead_converted(LeadConverted(lead_id=lead_id, client_id=client_id))
