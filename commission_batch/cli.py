"""
Command-line entry point for the settlement run.

Usage:
    commission-settle --gateway mypkg.processor:build_gateway [options]

Examples:
    # List what would be transferred, no processor calls
    commission-settle --gateway mypkg.processor:build_gateway --preview

    # Settle everything pending, no pacing (processor sandbox)
    commission-settle --gateway mypkg.processor:build_gateway --pacing 0

``--gateway`` names a callable (``module:attribute``) returning an object
implementing ``create_transfer``; an object already implementing it is
used as is.

Exit status: 0 when every attempted transfer succeeded, 1 when any failed,
2 on setup errors (config, database, gateway).
"""

from __future__ import annotations

import argparse
import importlib
import sys
from dataclasses import replace
from pathlib import Path

from commission_batch.domain.types import SettlementReport


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="commission-settle",
        description="Transfer net amounts of completed sales collected on the platform balance.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--gateway",
        required=True,
        help="Payment gateway factory as module:attribute.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config layered over the packaged defaults (default: COMMISSION_CONFIG env).",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL env or config).",
    )
    parser.add_argument(
        "--pacing",
        type=float,
        default=None,
        help="Seconds between transfer calls (default: from config).",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Settle at most this many sales.",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="List pending sales and exit. No processor calls, no DB writes.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level for the JSON log stream on stderr (default: INFO).",
    )
    return parser.parse_args(argv)


def load_gateway(target_path: str):
    """Resolve ``module:attribute`` to a gateway instance."""
    module_name, sep, attr = target_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Gateway must be given as module:attribute, got {target_path!r}")
    target = getattr(importlib.import_module(module_name), attr)
    if hasattr(target, "create_transfer"):
        return target
    return target()


def print_report(report: SettlementReport) -> None:
    heading = "Preview" if report.dry_run else "Settlement"
    print(f"{heading} run {report.run_id}")
    label = "Would transfer" if report.dry_run else "Transferred"
    print(f"  {label}: {report.transfer_count} sale(s), total {report.total_amount}")
    for currency, amount in sorted(report.totals_by_currency().items()):
        print(f"    {currency}: {amount}")
    for item in report.transfers:
        ref = item.transfer_ref or "-"
        print(f"    {item.sale_id} -> {item.account_ref} {item.amount} {item.currency} [{ref}]")
    if report.failures:
        print(f"  Failed: {len(report.failures)}")
        for item in report.failures:
            print(f"    {item.sale_id} -> {item.account_ref}: {item.error_code} {item.reason}")
    if report.skipped:
        print(f"  Skipped: {len(report.skipped)}")
        for item in report.skipped:
            print(f"    {item.sale_id} ({item.account_ref}): {item.reason}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from commission_config import get_active_config
    from commission_config.bridges import build_platform_policy
    from commission_kernel.db.engine import get_session_factory, init_engine_from_url
    from commission_kernel.logging_config import configure_logging

    from commission_batch.services.reconciler import ManualSettlementReconciler

    configure_logging(level=args.log_level.upper(), stream=sys.stderr)

    try:
        config = get_active_config(args.config)
    except Exception as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 2

    policy = build_platform_policy(config)
    if args.pacing is not None:
        policy = replace(policy, transfer_pacing_seconds=args.pacing)

    try:
        gateway = load_gateway(args.gateway)
    except Exception as e:
        print(f"ERROR: Failed to load gateway {args.gateway!r}: {e}", file=sys.stderr)
        return 2

    try:
        init_engine_from_url(args.database_url or config.database.url)
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 2

    reconciler = ManualSettlementReconciler(get_session_factory(), gateway, policy)
    if args.preview:
        print_report(reconciler.preview(limit=args.limit))
        return 0

    report = reconciler.run(limit=args.limit)
    print_report(report)
    return 1 if report.has_failures else 0


if __name__ == "__main__":
    sys.exit(main())
