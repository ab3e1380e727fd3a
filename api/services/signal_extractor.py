"""Best-effort signals mined from filing documents.

Each form family has its own extractor registered in `EXTRACTORS`; adding a
family means adding one function and one registry entry. Extraction never
raises: anything unparseable yields empty `ExtractedSignals`.
"""

from __future__ import annotations

import enum
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable

from logging_utils import get_logger
from models.filings import ExtractedSignals
from api.services.document_fetcher import extract_xml_payload, html_to_text
from api.services.filing_filters import is_ownership_form

logger = get_logger(__name__)


class FormFamily(str, enum.Enum):
    EVENT_REPORT = "event_report"
    OFFERING = "offering"
    OWNERSHIP = "ownership"


_OFFERING_PREFIXES = ("S-1", "S-3", "F-1", "F-3", "424B")


def classify_form_family(form_type: str) -> FormFamily | None:
    form = (form_type or "").strip().upper()
    if form.startswith("8-K"):
        return FormFamily.EVENT_REPORT
    if is_ownership_form(form):
        return FormFamily.OWNERSHIP
    if form.startswith(_OFFERING_PREFIXES):
        return FormFamily.OFFERING
    return None


# --- 8-K items --------------------------------------------------------------

_ITEM_RE = re.compile(r"\bItem\s+(\d{1,2}\.\d{2})\b", re.IGNORECASE)

ITEM_HIGHLIGHTS: dict[str, str] = {
    "1.01": "Material Agreement",
    "1.02": "Agreement Terminated",
    "2.01": "Acquisition / Disposition",
    "2.02": "Results of Operations",
    "2.03": "New Debt Obligation",
    "2.05": "Restructuring Costs",
    "2.06": "Material Impairment",
    "3.01": "Delisting Notice",
    "4.01": "Auditor Change",
    "4.02": "Non-Reliance on Financials",
    "5.01": "Change in Control",
    "5.02": "Executive Change",
    "5.07": "Shareholder Vote",
    "7.01": "Reg FD Disclosure",
    "8.01": "Other Events",
}


def extract_item_codes(text: str) -> tuple[str, ...]:
    # Distinct, first-seen order.
    return tuple(dict.fromkeys(m.group(1) for m in _ITEM_RE.finditer(text or "")))


def _extract_event_report(content: str) -> ExtractedSignals:
    codes = extract_item_codes(html_to_text(content))
    labels = tuple(ITEM_HIGHLIGHTS[c] for c in codes if c in ITEM_HIGHLIGHTS)
    return ExtractedSignals(item_codes=codes, highlight_labels=labels)


# --- offering amounts -------------------------------------------------------

_AMOUNT_RE = re.compile(
    r"(?<![\w.,])\$?\s?(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?(?:\s*(billion|million|bn|m)\b)?",
    re.IGNORECASE,
)
_MULTIPLIERS = {"billion": 1e9, "bn": 1e9, "million": 1e6, "m": 1e6}


def parse_amounts(text: str) -> list[float]:
    out: list[float] = []
    for m in _AMOUNT_RE.finditer(text or ""):
        value = float(m.group(1).replace(",", "") + (m.group(2) or ""))
        suffix = (m.group(3) or "").lower()
        out.append(value * _MULTIPLIERS.get(suffix, 1.0))
    return out


def largest_amount(text: str) -> float | None:
    amounts = parse_amounts(text)
    return max(amounts) if amounts else None


def _extract_offering(content: str) -> ExtractedSignals:
    return ExtractedSignals(largest_amount=largest_amount(html_to_text(content)))


# --- ownership (Forms 3/4/5) ------------------------------------------------


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "y", "yes"}


def _xml_text(node: ET.Element | None, path: str) -> str | None:
    if node is None:
        return None
    found = node.find(path)
    if found is None:
        return None
    # Some filers wrap values in <value>.
    text = (found.text or "").strip() or (found.findtext("{*}value") or "").strip()
    return text or None


def owner_roles_for(relationship: ET.Element | None) -> list[str]:
    roles: list[str] = []
    if _truthy(_xml_text(relationship, "{*}isDirector")):
        roles.append("Director")
    if _truthy(_xml_text(relationship, "{*}isOfficer")):
        title = _xml_text(relationship, "{*}officerTitle")
        roles.append(f"Officer ({title})" if title else "Officer")
    if _truthy(_xml_text(relationship, "{*}isTenPercentOwner")):
        roles.append("10% Owner")
    if _truthy(_xml_text(relationship, "{*}isOther")):
        roles.append(_xml_text(relationship, "{*}otherText") or "Other")
    return roles


def parse_reporting_owners(xml_text: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Return (owner_names, owner_roles) from an ownership document.

    Raises:
        ET.ParseError: on malformed XML.
    """

    root = ET.fromstring(xml_text)
    names: list[str] = []
    roles: list[str] = []
    for owner in root.iter():
        if not owner.tag.endswith("reportingOwner"):
            continue
        name = _xml_text(owner, "{*}reportingOwnerId/{*}rptOwnerName")
        if name:
            names.append(name)
        roles.extend(owner_roles_for(owner.find("{*}reportingOwnerRelationship")))
    return tuple(dict.fromkeys(names)), tuple(dict.fromkeys(roles))


def _extract_ownership(content: str) -> ExtractedSignals:
    xml_text = extract_xml_payload(content)
    if not xml_text:
        return ExtractedSignals()
    try:
        names, roles = parse_reporting_owners(xml_text)
    except ET.ParseError as e:
        logger.debug("Ownership XML unparseable | err=%s", e)
        return ExtractedSignals()
    return ExtractedSignals(owner_names=names, owner_roles=roles)


EXTRACTORS: dict[FormFamily, Callable[[str], ExtractedSignals]] = {
    FormFamily.EVENT_REPORT: _extract_event_report,
    FormFamily.OFFERING: _extract_offering,
    FormFamily.OWNERSHIP: _extract_ownership,
}


def extract_signals(content: str, form_type: str) -> ExtractedSignals:
    family = classify_form_family(form_type)
    extractor = EXTRACTORS.get(family) if family else None
    if extractor is None or not content:
        return ExtractedSignals()
    return extractor(content)
