from __future__ import annotations

import pytest

from api.services.name_matcher import NAME_MARKER_WINDOW, matches, normalize_name_text


def test_normalize_name_text():
    assert normalize_name_text("  O'Brien,  Jane Q.  ") == "obrien jane q"
    assert normalize_name_text("Jen-Hsun & Lori") == "jen hsun lori"
    assert normalize_name_text("J.Q. Public") == "j q public"


def test_reversed_order_with_middle_initial():
    assert matches("Jane Q. Public, Reporting Person", "Public Jane")


def test_initial_form():
    assert matches("J Public", "Jane Public")


def test_bare_surname_inside_company_name_does_not_match():
    assert not matches("Acme Public Co.", "Public")


@pytest.mark.parametrize(
    "text,query",
    [
        ("HUANG JEN HSUN", "Jen-Hsun Huang"),  # EDGAR "LAST FIRST MIDDLE"
        ("Signed by Jane Public, Director", "jane public"),
        ("Jane Quincy Public", "Jane Public"),
        ("PUBLIC J", "Jane Public"),
        ("O'Brien Patrick", "Patrick OBrien"),
        ("J.Q. Public", "Jane Public"),
        ("PUBLIC J.Q.", "Jane Public"),
    ],
)
def test_positive_matches(text, query):
    assert matches(text, query)


@pytest.mark.parametrize(
    "text,query",
    [
        ("Janet Publican", "Jane Public"),
        ("Public Storage Inc.", "Jane Public"),
        ("", "Jane Public"),
        ("Jane Public", ""),
    ],
)
def test_negative_matches(text, query):
    assert not matches(text, query)


def test_surname_alone_matches_next_to_marker():
    assert matches("Reporting Owner: PUBLIC HOLDINGS LLC", "Public")
    assert matches("Name of reporting person: Smith", "John Smith")


def test_surname_marker_must_be_close():
    far = "Smith " + ("x " * NAME_MARKER_WINDOW) + "reporting person"

    assert not matches(far, "Smith")


def test_single_token_whole_text_equality():
    assert matches("Public", "public")
    assert not matches("Smithson reporting person", "Smith")
