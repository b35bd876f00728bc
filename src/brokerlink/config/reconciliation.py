"""Reconciliation defaults for batch runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_int_env

DEFAULT_RECONCILE_PAGE_SIZE = 200
DEFAULT_RECONCILE_INTERVAL_SECONDS = 300


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    page_size: int = DEFAULT_RECONCILE_PAGE_SIZE
    interval_seconds: int = DEFAULT_RECONCILE_INTERVAL_SECONDS


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        page_size=positive_int_env("BROKERLINK_PAGE_SIZE", DEFAULT_RECONCILE_PAGE_SIZE),
        interval_seconds=positive_int_env(
            "BROKERLINK_INTERVAL_SECONDS",
            DEFAULT_RECONCILE_INTERVAL_SECONDS,
        ),
    )
