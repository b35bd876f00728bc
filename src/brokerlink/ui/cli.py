from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from brokerlink.app import handle_lead_converted, reconcile_policy_links
from brokerlink.config import ConfigurationError, configure_logging, get_reconciliation_config
from brokerlink.domain.reconciliation import PolicyEnumerationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from brokerlink.domain.reconciliation import ConsistencyReport

log = logging.getLogger(__name__)

_CANCEL = threading.Event()


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {parsed}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile policy/client links")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Repair policy/client links in batch")
    reconcile.add_argument(
        "--page-size",
        type=_positive_int,
        default=None,
        help="Number of policies to load per page (defaults to config)",
    )
    schedule = reconcile.add_mutually_exclusive_group()
    schedule.add_argument(
        "--every",
        type=_positive_int,
        metavar="SECONDS",
        help="Keep running, starting a new pass every SECONDS until interrupted",
    )
    schedule.add_argument(
        "--watch",
        action="store_true",
        help="Keep running at the configured BROKERLINK_INTERVAL_SECONDS",
    )
    reconcile.add_argument(
        "--json",
        action="store_true",
        help="Print each report as a JSON line on stdout",
    )

    converted = subparsers.add_parser(
        "lead-converted",
        help="Relink policies after a lead was converted to a client",
    )
    converted.add_argument("--lead-id", type=_positive_int, required=True)
    converted.add_argument("--client-id", type=_positive_int, required=True)

    return parser.parse_args(list(argv))


def _emit_report(report: ConsistencyReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.as_dict(), default=str))  # noqa: T201
        return
    log.info(
        "Reconciliation report: scanned=%s, linked=%s, repaired=%s, ambiguous=%s, "
        "orphaned=%s, conflicts=%s, errors=%s, cancelled=%s",
        report.scanned,
        report.already_linked,
        report.repaired_via_lead,
        report.ambiguous_leads,
        report.orphaned,
        report.write_conflicts,
        report.errors,
        report.cancelled,
    )


def _run_reconcile(args: argparse.Namespace) -> None:
    config = get_reconciliation_config()
    page_size = args.page_size or config.page_size
    interval = args.every or (config.interval_seconds if args.watch else None)
    if interval is None:
        report = reconcile_policy_links(page_size=page_size, cancel=_CANCEL)
        _emit_report(report, as_json=args.json)
        return

    while True:
        try:
            report = reconcile_policy_links(page_size=page_size, cancel=_CANCEL)
        except PolicyEnumerationError:
            # the next pass restarts from the first page
            log.exception("Reconciliation pass aborted; retrying in %ss", interval)
        else:
            _emit_report(report, as_json=args.json)
            if report.cancelled:
                return
        if _CANCEL.wait(interval):
            log.info("Stopping periodic reconciliation")
            return


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        get_reconciliation_config()
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)

    try:
        if parsed_args.command == "reconcile":
            _run_reconcile(parsed_args)
        elif parsed_args.command == "lead-converted":
            relinked = handle_lead_converted(parsed_args.lead_id, parsed_args.client_id)
            log.info("Relinked %s policies for lead #%s", relinked, parsed_args.lead_id)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Stop after the current page on SIGINT (Ctrl+C)."""
    log.info("Interrupted by user (Ctrl+C); finishing current page")
    _CANCEL.set()


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
