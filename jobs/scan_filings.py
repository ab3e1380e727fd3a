from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Allow running this file directly (e.g. `python jobs/scan_filings.py NVDA`) by
# ensuring the project root is importable.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from api.services import filing_filters
from api.services.filings_service import FilingsService, create_filings_service
from logging_utils import get_logger, set_log_level
from utils.errors import FilingsError

logger = get_logger(__name__)


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--forms", default=None, help="Comma-separated form prefixes or families (e.g. '8-K,OWNERSHIP')")
    p.add_argument("--start", default=None, help="From date (YYYY, YYYY-MM or YYYY-MM-DD), inclusive")
    p.add_argument("--end", default=None, help="To date (YYYY, YYYY-MM or YYYY-MM-DD), inclusive")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=None)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Look up and mine SEC EDGAR filings for one company")
    p.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run (e.g. DEBUG, INFO, WARNING)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("resolve", help="Resolve a ticker / company name / CIK")
    r.add_argument("identifier")

    ls = sub.add_parser("list", help="List (and optionally enrich) filings")
    ls.add_argument("identifier")
    _add_filter_args(ls)
    ls.add_argument("--owner-only", action="store_true", help="Only Forms 3/4/5")
    ls.add_argument("--enrich", action="store_true", help="Fetch each document on the page and extract signals")

    person = sub.add_parser("person", help="Filings whose documents mention a person")
    person.add_argument("identifier")
    person.add_argument("name")
    _add_filter_args(person)

    latest = sub.add_parser("latest", help="Most recent filing")
    latest.add_argument("identifier")
    latest.add_argument("--form", default=None)

    return p.parse_args(argv)


def run_command(service: FilingsService, args: argparse.Namespace) -> dict:
    """Execute one parsed command and return its JSON-serializable result."""

    if args.command == "resolve":
        return service.resolve(args.identifier).as_dict()

    if args.command == "latest":
        return service.latest_filing(args.identifier, form_type=args.form).as_dict()

    filters = filing_filters.build_filters(
        date_from=args.start,
        date_to=args.end,
        form_types=args.forms,
        owner_only=getattr(args, "owner_only", False),
    )
    if args.command == "person":
        page = service.search_by_person(
            args.identifier, args.name, filters=filters, page=args.page, page_size=args.page_size
        )
    else:
        page = service.list_filings(
            args.identifier,
            filters=filters,
            page=args.page,
            page_size=args.page_size,
            enrich=args.enrich,
        )
    return page.as_dict()


def main(argv: list[str] | None = None, *, service: FilingsService | None = None) -> int:
    args = _parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)

    service = service or create_filings_service()
    try:
        result = run_command(service, args)
    except FilingsError as e:
        logger.warning("scan_filings failed | command=%s code=%s err=%s", args.command, e.code, e)
        print(json.dumps({"ok": False, "error": {"code": e.code, "message": e.message, "details": e.details}}, indent=2))
        return 1
    except ValueError as e:
        print(json.dumps({"ok": False, "error": {"code": "invalid_request", "message": str(e)}}, indent=2))
        return 2

    print(json.dumps({"ok": True, "data": result}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
