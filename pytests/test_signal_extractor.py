from __future__ import annotations

import pytest

from api.services.signal_extractor import (
    FormFamily,
    classify_form_family,
    extract_item_codes,
    extract_signals,
    largest_amount,
    parse_amounts,
    parse_reporting_owners,
)
from pytests.common import FORM4_XML


@pytest.mark.parametrize(
    "form,family",
    [
        ("8-K", FormFamily.EVENT_REPORT),
        ("8-K/A", FormFamily.EVENT_REPORT),
        ("4", FormFamily.OWNERSHIP),
        ("3/A", FormFamily.OWNERSHIP),
        ("S-1", FormFamily.OFFERING),
        ("S-11", FormFamily.OFFERING),
        ("424B5", FormFamily.OFFERING),
        ("F-3ASR", FormFamily.OFFERING),
        ("10-K", None),
        ("40-F", None),
    ],
)
def test_classify_form_family(form, family):
    assert classify_form_family(form) is family


def test_item_codes_distinct_in_first_seen_order():
    text = "ITEM 5.02 Departure ... Item 9.01 Exhibits ... item 5.02 again ... Item 2.02"

    assert extract_item_codes(text) == ("5.02", "9.01", "2.02")


def test_event_report_signals_from_html():
    html = (
        "<html><body><p>Item 2.02 Results of Operations and Financial Condition</p>"
        "<p>Item 9.01 Financial Statements and Exhibits</p></body></html>"
    )

    signals = extract_signals(html, "8-K")

    assert signals.item_codes == ("2.02", "9.01")
    # 9.01 has no highlight label; it is kept as a code only.
    assert signals.highlight_labels == ("Results of Operations",)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("up to $2 billion of common stock", 2_000_000_000.0),
        ("aggregate of $1,250,000.50", 1_250_000.50),
        ("$3.5 million", 3_500_000.0),
        ("USD 40bn program", 40_000_000_000.0),
        ("$750M notes", 750_000_000.0),
    ],
)
def test_amounts_are_normalized_to_dollars(text, expected):
    assert largest_amount(text) == pytest.approx(expected)


def test_largest_amount_picks_max_and_none_when_absent():
    assert largest_amount("$5 million and $2 billion and $100") == pytest.approx(2e9)
    assert largest_amount("no numbers here") is None
    assert parse_amounts("") == []


def test_offering_signals():
    signals = extract_signals("<p>Proposed maximum aggregate offering price: $2 billion</p>", "S-3ASR")

    assert signals.largest_amount == pytest.approx(2e9)
    assert signals.item_codes == ()


def test_reporting_owners_and_roles():
    names, roles = parse_reporting_owners(FORM4_XML)

    assert names == ("HUANG JEN HSUN", "Jen-Hsun & Lori Huang Foundation")
    assert roles == ("Director", "Officer (President and CEO)", "See Remarks")


def test_reporting_owners_namespace_agnostic():
    xml = FORM4_XML.replace("<ownershipDocument>", '<ownershipDocument xmlns="urn:example">')

    names, _roles = parse_reporting_owners(xml)

    assert names[0] == "HUANG JEN HSUN"


def test_ownership_signals_from_full_submission_text():
    full = f"<SEC-DOCUMENT><TYPE>4<TEXT><XML>\n{FORM4_XML}</XML></TEXT></SEC-DOCUMENT>"

    signals = extract_signals(full, "4")

    assert signals.owner_names[0] == "HUANG JEN HSUN"
    assert "10% Owner" not in signals.owner_roles


def test_ten_percent_owner_and_bare_officer():
    xml = """<ownershipDocument><reportingOwner>
      <reportingOwnerId><rptOwnerName>BIG FUND LP</rptOwnerName></reportingOwnerId>
      <reportingOwnerRelationship>
        <isOfficer>1</isOfficer><isTenPercentOwner>1</isTenPercentOwner><isOther>1</isOther>
      </reportingOwnerRelationship></reportingOwner></ownershipDocument>"""

    signals = extract_signals(xml, "3")

    assert signals.owner_roles == ("Officer", "10% Owner", "Other")


def test_unparseable_ownership_xml_is_no_signal():
    signals = extract_signals("<?xml version='1.0'?><ownershipDocument><broken>", "4")

    assert signals.empty


def test_unknown_family_is_empty():
    assert extract_signals("Item 2.02 $5 billion", "10-K").empty
    assert extract_signals("", "8-K").empty
