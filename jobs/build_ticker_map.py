from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

# Allow running this file directly (e.g. `python jobs/build_ticker_map.py`) by
# ensuring the project root is importable.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from api.services.identifier_index import load_remote_directory
from logging_utils import get_logger, set_log_level
from models.identifiers import IdentifierRecord
from utils.identifiers import ticker_variants
from utils.time_utils import utcnow

logger = get_logger(__name__)

_DEFAULT_OUTPUT = _PROJECT_ROOT / "data" / "ticker_map.json"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description=(
            "Download the SEC ticker directory and write the local snapshot used "
            "when sec.gov is unreachable (set LOCAL_TICKER_MAP_PATH to the output)."
        )
    )
    p.add_argument(
        "--output",
        default=os.getenv("LOCAL_TICKER_MAP_PATH") or str(_DEFAULT_OUTPUT),
        help="Output JSON path (default: $LOCAL_TICKER_MAP_PATH or data/ticker_map.json)",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run (e.g. DEBUG, INFO, WARNING)",
    )
    return p.parse_args(argv)


def snapshot_payload(records: list[IdentifierRecord]) -> dict:
    return {
        "generated_at": utcnow().isoformat(),
        "source": "sec",
        "records": [
            {**r.as_dict(), "ticker": r.ticker, "ticker_variants": ticker_variants(r.ticker)}
            for r in records
        ],
    }


def write_snapshot(records: list[IdentifierRecord], output: str | Path) -> Path:
    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    # Write-then-rename so a reader never sees a half-written file.
    tmp = out.with_suffix(out.suffix + ".tmp")
    tmp.write_text(json.dumps(snapshot_payload(records), indent=1), encoding="utf-8")
    tmp.replace(out)
    return out


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    if args.log_level:
        set_log_level(args.log_level)

    try:
        records = load_remote_directory()
        out = write_snapshot(records, args.output)
    except Exception:
        logger.exception("build_ticker_map failed | output=%s", args.output)
        raise

    logger.info("build_ticker_map complete | records=%s output=%s", len(records), out)
    print(f"build_ticker_map: wrote {len(records)} records to {out}")


if __name__ == "__main__":
    main()
