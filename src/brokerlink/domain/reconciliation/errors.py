"""Reconciliation error definitions."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for errors raised by the link reconciliation engine."""


class PolicyEnumerationError(ReconciliationError):
    """Raised when the policy set cannot be listed and a batch run must abort."""

    def __init__(self, message: str, *, cursor: int | None) -> None:
        super().__init__(message)
        self.cursor = cursor
