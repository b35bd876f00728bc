from __future__ import annotations

import threading

import pytest

from brokerlink.domain.reconciliation import (
    AmbiguousLink,
    BatchReconciler,
    PolicyEnumerationError,
    PolicyLinkSyncHook,
)
from tests.support.link_store import (
    InMemoryLinkStore,
    StoreUnavailableError,
    make_client,
    make_policy,
)


def _mixed_store() -> InMemoryLinkStore:
    return InMemoryLinkStore(
        clients=[
            make_client(55, lead_id=7),
            make_client(60, lead_id=8),
            make_client(75, lead_id=8),
            make_client(80),
        ],
        policies=[
            make_policy(101, lead_id=7),
            make_policy(102, lead_id=8),
            make_policy(103, client_id=80),
            make_policy(104, client_id=999),
            make_policy(105, lead_id=42),
            make_policy(106),
            make_policy(107, client_id=999, lead_id=7),
        ],
    )


def test_converted_lead_policy_is_repaired() -> None:
    store = InMemoryLinkStore(policies=[make_policy(101, lead_id=7)])
    store.add_client(make_client(55, lead_id=7))

    report = BatchReconciler(store).run(page_size=10)

    assert store.policy(101).client_id == 55
    assert report.repaired_via_lead == 1
    assert report.scanned == 1


def test_run_counts_every_outcome() -> None:
    store = _mixed_store()

    report = BatchReconciler(store).run(page_size=3)

    assert report.scanned == 7
    assert report.pages == 3
    assert report.already_linked == 1
    assert report.repaired_via_lead == 2
    assert report.ambiguous_leads == 1
    assert report.orphaned == 3
    assert report.write_conflicts == 0
    assert report.errors == 0
    assert report.dangling_references == 2
    assert report.ambiguous == [
        AmbiguousLink(policy_id=102, lead_id=8, candidate_ids=(60, 75), chosen_client_id=60)
    ]
    assert store.policy(101).client_id == 55
    assert store.policy(102).client_id == 60
    assert store.policy(107).client_id == 55


def test_second_run_is_fixed_point() -> None:
    store = _mixed_store()
    reconciler = BatchReconciler(store)
    reconciler.run(page_size=2)
    writes_after_first = list(store.writes)

    second = reconciler.run(page_size=2)

    assert second.repaired_via_lead == 0
    assert second.ambiguous_leads == 0
    assert second.write_conflicts == 0
    assert second.is_fixed_point
    assert second.already_linked == 4
    assert second.orphaned == 3
    assert store.writes == writes_after_first


def test_valid_links_are_never_written() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(55, lead_id=7), make_client(56, lead_id=7)],
        policies=[make_policy(101, client_id=56, lead_id=7)],
    )

    report = BatchReconciler(store).run(page_size=5)

    assert report.already_linked == 1
    assert store.writes == []
    assert store.policy(101).version == 1


def test_orphans_stay_untouched_across_runs() -> None:
    store = InMemoryLinkStore(
        policies=[make_policy(104, client_id=999), make_policy(105, lead_id=42)],
    )
    reconciler = BatchReconciler(store)

    reports = [reconciler.run(page_size=1) for _ in range(3)]

    assert [report.orphaned for report in reports] == [2, 2, 2]
    assert store.writes == []
    assert store.policy(104).client_id == 999
    assert store.policy(104).version == 1


def test_tie_break_is_reproducible_across_runs() -> None:
    for _ in range(3):
        store = InMemoryLinkStore(
            clients=[make_client(75, lead_id=8), make_client(60, lead_id=8)],
            policies=[make_policy(101, lead_id=8)],
        )
        BatchReconciler(store).run(page_size=1)
        assert store.policy(101).client_id == 60


def test_concurrent_hook_write_wins_over_stale_batch_read() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(60, lead_id=8), make_client(75, lead_id=8)],
        policies=[make_policy(101, lead_id=8)],
    )
    hook = PolicyLinkSyncHook(store)

    def hook_runs_first(policy_id: int) -> None:
        store.before_update = None
        hook.after_policy_write(store.policy(policy_id))

    store.before_update = hook_runs_first

    report = BatchReconciler(store).run(page_size=10)

    assert report.write_conflicts == 1
    assert report.errors == 0
    assert report.ambiguous_leads == 0
    assert store.writes == [(101, 60)]
    assert store.policy(101).client_id == 60
    assert store.policy(101).version == 2


def test_user_edit_between_read_and_write_is_a_conflict() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(55, lead_id=7), make_client(90)],
        policies=[make_policy(101, lead_id=7)],
    )

    def user_relinks(policy_id: int) -> None:
        store.before_update = None
        store.edit_policy(policy_id, client_id=90)

    store.before_update = user_relinks

    report = BatchReconciler(store).run(page_size=10)

    assert report.write_conflicts == 1
    assert store.policy(101).client_id == 90

    follow_up = BatchReconciler(store).run(page_size=10)
    assert follow_up.already_linked == 1
    assert follow_up.is_fixed_point


def test_deleted_policy_counts_as_vanished() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(55, lead_id=7)],
        policies=[make_policy(101, lead_id=7)],
    )
    store.before_update = store.delete_policy

    report = BatchReconciler(store).run(page_size=10)

    assert report.vanished == 1
    assert report.errors == 0
    assert report.write_conflicts == 0


def test_per_record_errors_do_not_abort_run() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(55, lead_id=7), make_client(56, lead_id=9)],
        policies=[
            make_policy(101, lead_id=7),
            make_policy(102, lead_id=8),
            make_policy(103, lead_id=9),
        ],
    )
    store.failing_lead_lookups.add(8)

    report = BatchReconciler(store).run(page_size=2)

    assert report.errors == 1
    assert report.repaired_via_lead == 2
    assert report.scanned == 3


def test_enumeration_failure_is_fatal() -> None:
    store = InMemoryLinkStore(policies=[make_policy(pid) for pid in range(101, 106)])
    store.fail_pages_after = 1

    with pytest.raises(PolicyEnumerationError) as excinfo:
        BatchReconciler(store).run(page_size=2)

    assert excinfo.value.cursor == 102
    assert isinstance(excinfo.value.__cause__, StoreUnavailableError)


def test_cancellation_stops_between_pages() -> None:
    store = InMemoryLinkStore(
        clients=[make_client(55, lead_id=7)],
        policies=[make_policy(pid, lead_id=7) for pid in range(101, 107)],
    )
    cancel = threading.Event()

    def cancel_after_first_write(_policy_id: int) -> None:
        cancel.set()

    store.before_update = cancel_after_first_write

    report = BatchReconciler(store).run(page_size=2, cancel=cancel)

    assert report.cancelled
    assert report.pages == 1
    assert report.scanned == 2
    assert report.repaired_via_lead == 2
    assert store.policy(103).client_id is None


def test_pre_cancelled_run_reads_nothing() -> None:
    store = InMemoryLinkStore(policies=[make_policy(101)])
    cancel = threading.Event()
    cancel.set()

    report = BatchReconciler(store).run(page_size=2, cancel=cancel)

    assert report.cancelled
    assert report.scanned == 0
    assert store.page_requests == []


def test_pages_are_bounded_by_page_size() -> None:
    store = InMemoryLinkStore(policies=[make_policy(pid) for pid in range(101, 106)])

    BatchReconciler(store).run(page_size=2)

    assert store.page_requests == [(None, 2), (102, 2), (104, 2)]


def test_empty_store_produces_empty_report() -> None:
    report = BatchReconciler(InMemoryLinkStore()).run(page_size=5)

    assert report.scanned == 0
    assert report.pages == 1
    assert report.is_fixed_point


def test_page_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="positive"):
        BatchReconciler(InMemoryLinkStore()).run(page_size=0)
