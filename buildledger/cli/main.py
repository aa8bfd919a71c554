#!/usr/bin/env python3

import argparse
import json
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from buildledger.domain.errors import LedgerError
from buildledger.ledger_access import JsonLedgerStore
from buildledger.runtime import get_logger, set_log_level

logger = get_logger(__name__)


def _print_error(error: str) -> None:
    for line in error.splitlines():
        print(line)


def _parse_date(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _load_quote(path: Path) -> dict[str, object]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read quote file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Quote file {path} must hold a JSON object")
    return data


def _open_store(args: argparse.Namespace) -> JsonLedgerStore:
    return JsonLedgerStore(args.ledger)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Construction procurement and usage tracking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  tracking <project>            Purchase status per line item
  usage <project>               Usage burn-down and low-stock items
  add-item <project> ...        Add an estimated line item
  record-purchase <item> ...    Record a purchase
  delete-purchase <id>          Delete a purchase record
  record-usage <item> <qty>     Record usage (may fire a low-stock alert)
  accept-quote <project> <json> Turn an accepted quote into a purchase draft
  serve [--port]                Start the HTTP server
""",
    )
    parser.add_argument(
        "--ledger",
        type=Path,
        default=None,
        help="Ledger JSON file (default: data/ledger.json under BUILDLEDGER_HOME)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    tracking_parser = subparsers.add_parser("tracking", help="Show purchase tracking for a project")
    tracking_parser.add_argument("project_id")
    tracking_parser.add_argument(
        "--status",
        choices=["pending", "in_progress", "completed", "over_purchased"],
        help="Only show items with this status",
    )
    tracking_parser.add_argument("--search", help="Only show items whose name contains this text")

    usage_parser = subparsers.add_parser("usage", help="Show usage burn-down for a project")
    usage_parser.add_argument("project_id")

    item_parser = subparsers.add_parser("add-item", help="Add an estimated line item")
    item_parser.add_argument("project_id")
    item_parser.add_argument("name")
    item_parser.add_argument("unit")
    item_parser.add_argument("estimated_quantity", type=float)
    item_parser.add_argument("estimated_unit_price", type=float)
    item_parser.add_argument("--category", default="")
    item_parser.add_argument("--material-key", default=None)
    item_parser.add_argument("--id", dest="item_id", default=None)

    purchase_parser = subparsers.add_parser("record-purchase", help="Record a purchase")
    purchase_parser.add_argument("item_id")
    purchase_parser.add_argument("quantity", type=float)
    purchase_parser.add_argument("unit_price", type=float)
    purchase_parser.add_argument("supplier")
    purchase_parser.add_argument("--date", default=None, help="Purchase date (ISO format, default: now)")
    purchase_parser.add_argument("--notes", default=None)

    delete_parser = subparsers.add_parser("delete-purchase", help="Delete a purchase record")
    delete_parser.add_argument("record_id")

    record_usage_parser = subparsers.add_parser("record-usage", help="Record material usage")
    record_usage_parser.add_argument("item_id")
    record_usage_parser.add_argument("quantity", type=float)
    record_usage_parser.add_argument("--date", default=None, help="Usage date (ISO format, default: now)")
    record_usage_parser.add_argument("--notes", default=None)

    quote_parser = subparsers.add_parser("accept-quote", help="Draft a purchase from an accepted quote")
    quote_parser.add_argument("project_id")
    quote_parser.add_argument("quote_file", type=Path, help="JSON file describing the accepted quote")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")

    return parser


def _run(args: argparse.Namespace) -> int:
    if args.command == "tracking":
        from buildledger.application.tracking import load_project_tracking
        from buildledger.cli.formatting import format_tracking

        tracking = load_project_tracking(_open_store(args), args.project_id, status=args.status, search=args.search)
        print("\n".join(format_tracking(tracking)))
        return 0

    if args.command == "usage":
        from buildledger.application.tracking import load_project_tracking
        from buildledger.cli.formatting import format_usage

        tracking = load_project_tracking(_open_store(args), args.project_id)
        print("\n".join(format_usage(tracking)))
        return 0

    if args.command == "add-item":
        from buildledger.application.tracking import create_line_item

        item = create_line_item(
            _open_store(args),
            args.project_id,
            name=args.name,
            unit=args.unit,
            estimated_quantity=args.estimated_quantity,
            estimated_unit_price=args.estimated_unit_price,
            category=args.category,
            material_key=args.material_key,
            item_id=args.item_id,
        )
        print(f"Added line item {item.id}")
        return 0

    if args.command == "record-purchase":
        from buildledger.application.procurement import PurchaseRequest, record_purchase

        record = record_purchase(
            _open_store(args),
            PurchaseRequest(
                item_id=args.item_id,
                quantity=args.quantity,
                unit_price=args.unit_price,
                supplier_ref=args.supplier,
                purchased_at=_parse_date(args.date),
                notes=args.notes,
            ),
        )
        print(f"Recorded purchase {record.id}")
        return 0

    if args.command == "delete-purchase":
        from buildledger.application.procurement import remove_purchase

        removed = remove_purchase(_open_store(args), args.record_id)
        print(f"Deleted purchase {removed.id}")
        return 0

    if args.command == "record-usage":
        from buildledger.application.usage import UsageRecorder, UsageRecordRequest
        from buildledger.cli.formatting import format_ratio

        result = UsageRecorder(_open_store(args)).record_usage(
            UsageRecordRequest(
                item_id=args.item_id,
                quantity_used=args.quantity,
                used_at=_parse_date(args.date),
                notes=args.notes,
            )
        )
        print(f"Recorded usage {result.record.id}: {format_ratio(result.view.remaining_percent)} remaining")
        if result.alert is not None:
            print(result.alert.message)
        return 0

    if args.command == "accept-quote":
        from buildledger.application.procurement import draft_purchase_from_quote
        from buildledger.domain.rfq import AcceptedQuote

        try:
            quote = AcceptedQuote(**_load_quote(args.quote_file))
        except TypeError as exc:
            raise ValueError(f"Quote file {args.quote_file} does not describe a quote: {exc}") from exc
        draft = draft_purchase_from_quote(_open_store(args), args.project_id, quote)
        print(f"Draft purchase for item {draft.item_id} from {draft.supplier_name} (matched by {draft.matched_by})")
        if draft.suggested_quantity is not None or draft.suggested_unit_price is not None:
            print(f"  Quoted: {draft.suggested_quantity} at {draft.suggested_unit_price}")
        print("  Confirm quantity and price with: record-purchase")
        return 0

    if args.command == "serve":
        import uvicorn

        from buildledger.application.server import create_app

        print(f"Starting buildledger server on {args.host}:{args.port}")
        print("Press Ctrl+C to stop")
        uvicorn.run(create_app(_open_store(args)), host=args.host, port=args.port)
        return 0

    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.verbose:
        set_log_level(logging.DEBUG)

    try:
        return _run(args)
    except LedgerError as exc:
        logger.debug("Command %s failed: %s", args.command, exc)
        _print_error(str(exc))
        return 1
    except ValueError as exc:
        logger.debug("Command %s got invalid input: %s", args.command, exc)
        _print_error(f"Invalid input: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
