from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class IdentifierRecord:
    """One row of the SEC ticker directory.

    `registry_id` is the 10-digit zero-padded CIK. `ticker` may be empty
    (e.g. foreign private issuers); `display_name` is never empty then.
    """

    ticker: str
    display_name: str
    registry_id: str
    exchange: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker or None,
            "display_name": self.display_name,
            "registry_id": self.registry_id,
            "exchange": self.exchange,
        }


@dataclass(frozen=True)
class MatchCandidate:
    identifier: IdentifierRecord
    score: float

    def as_dict(self) -> dict[str, Any]:
        return {**self.identifier.as_dict(), "score": round(self.score, 2)}


@dataclass(frozen=True)
class ResolveResult:
    exact: IdentifierRecord | None
    candidates: tuple[MatchCandidate, ...] = field(default_factory=tuple)

    @property
    def ambiguous(self) -> bool:
        return self.exact is None and len(self.candidates) > 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "exact": self.exact.as_dict() if self.exact else None,
            "ambiguous": self.ambiguous,
            "candidates": [c.as_dict() for c in self.candidates],
        }
