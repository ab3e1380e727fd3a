from __future__ import annotations

import re

from utils.errors import InvalidIdentifier

_CIK_RE = re.compile(r"^\d{1,10}$")
_ACCESSION_DASHED_RE = re.compile(r"^(\d{10})-(\d{2})-(\d{6})$")
_ACCESSION_PLAIN_RE = re.compile(r"^\d{18}$")


def is_registry_id(value: str | int | None) -> bool:
    return value is not None and bool(_CIK_RE.match(str(value).strip()))


def pad_cik(cik: str | int) -> str:
    """Normalize a CIK to the 10-digit zero-padded form.

    '320193', '0000320193' and 320193 all normalize to '0000320193'.

    Raises:
        InvalidIdentifier: if `cik` is not 1-10 digits.
    """

    raw = str(cik if cik is not None else "").strip()
    if not _CIK_RE.match(raw):
        raise InvalidIdentifier(f"Invalid CIK: {raw!r} (expected 1-10 digits)")
    return raw.zfill(10)


def cik_path_segment(cik: str | int) -> str:
    """CIK as used in archive paths (no leading zeros)."""

    return str(int(pad_cik(cik)))


def accession_key(accession: str) -> str:
    """Separator-free accession number, the form used in archive paths."""

    return str(accession or "").strip().replace("-", "")


def accession_dashed(accession: str) -> str:
    """Canonical dashed accession number (0000320193-24-000001).

    Unknown shapes are returned trimmed, unchanged.
    """

    raw = str(accession or "").strip()
    if _ACCESSION_DASHED_RE.match(raw):
        return raw
    if _ACCESSION_PLAIN_RE.match(raw):
        return f"{raw[:10]}-{raw[10:12]}-{raw[12:]}"
    return raw


def ticker_key(value: str) -> str:
    """Uppercase alphanumerics only, so BRK.B / BRK-B / brkb compare equal."""

    return "".join(ch for ch in str(value or "").upper() if ch.isalnum())


def ticker_variants(ticker: str) -> list[str]:
    """Spellings a class-share ticker is commonly typed with."""

    t = str(ticker or "").upper().strip()
    if not t:
        return []
    out = [t]
    if "." in t:
        out += [t.replace(".", "-"), t.replace(".", "")]
    elif "-" in t:
        out += [t.replace("-", "."), t.replace("-", "")]
    # De-duplicate, keep order.
    return list(dict.fromkeys(out))
