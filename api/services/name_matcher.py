"""Fuzzy person-name matching against filing text.

EDGAR writes reporting owners as "LAST FIRST MIDDLE" while users type
"First Last", so the matcher accepts either order, middle names/initials and
first-initial forms. A bare last name only counts next to a
"reporting person"/"reporting owner" marker, otherwise surnames that happen
to be part of company names would match everything.
"""

from __future__ import annotations

import re

_DROP_RE = re.compile(r"['’]")
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_WS_RE = re.compile(r"\s+")
_MARKER_RE = re.compile(r"\breporting (?:person|owner)s?\b")

# Max distance (characters) between a bare last name and the marker.
NAME_MARKER_WINDOW = 200


def normalize_name_text(value: str) -> str:
    """Lowercase, drop apostrophes, other punctuation (periods too) -> space, collapse."""

    s = _DROP_RE.sub("", str(value or "").lower())
    s = _PUNCT_RE.sub(" ", s)
    return _WS_RE.sub(" ", s).strip()


def _word(pattern: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){pattern}(?!\w)")


def _last_name_near_marker(text: str, last: str) -> bool:
    markers = [m.start() for m in _MARKER_RE.finditer(text)]
    if not markers:
        return False
    for m in _word(re.escape(last)).finditer(text):
        if any(abs(m.start() - pos) <= NAME_MARKER_WINDOW for pos in markers):
            return True
    return False


def matches(candidate_text: str, query_name: str) -> bool:
    text = normalize_name_text(candidate_text)
    tokens = normalize_name_text(query_name).split()
    if not text or not tokens:
        return False

    if len(tokens) == 1:
        # (a) for a bare surname is whole-text equality; otherwise only (d).
        return text == tokens[0] or _last_name_near_marker(text, tokens[0])

    first, last = re.escape(tokens[0]), re.escape(tokens[-1])
    initial = re.escape(tokens[0][0])
    middle = r"(?: \w+)?"

    patterns = (
        # (a) the full query as typed
        re.escape(" ".join(tokens)),
        # (b) either order, one optional middle name/initial
        rf"{first}{middle} {last}",
        rf"{last}{middle} {first}",
        # (c) first initial + last name, either order
        rf"{initial}{middle} {last}",
        rf"{last} {initial}",
    )
    if any(_word(p).search(text) for p in patterns):
        return True

    # (d) last name alone, next to a reporting-person marker
    return _last_name_near_marker(text, tokens[-1])
