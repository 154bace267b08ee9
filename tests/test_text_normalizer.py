import re

import pytest

from mailflow.text_normalizer import (
    contextual_snippet,
    edit_distance,
    fold_accents,
    relaxed_pattern,
)

SAMPLES = [
    "",
    "plain ascii",
    "Hóa đơn tiền điện",
    "Nguyễn Văn An",
    "Café Lumière",
    "Łódź, Ørsted, İstanbul",
    "naïve façade",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_fold_is_idempotent(text):
    once = fold_accents(text)
    assert fold_accents(once) == once


def test_fold_strips_vietnamese_and_latin_accents():
    assert fold_accents("Hóa đơn tiền điện") == "Hoa don tien dien"
    assert fold_accents("Café Lumière") == "Cafe Lumiere"
    assert fold_accents("Đà Nẵng") == "Da Nang"
    assert fold_accents("Ørsted") == "Orsted"


def test_fold_makes_accent_variants_equal():
    assert fold_accents("resume") == fold_accents("résumé")


def test_relaxed_pattern_matches_accented_corpus():
    pattern = re.compile(relaxed_pattern("hoa don"), re.IGNORECASE)
    assert pattern.search("Hóa đơn tiền điện tháng 3")
    assert pattern.search("HOA DON")
    assert not pattern.search("hoa dan")


def test_relaxed_pattern_accepts_accented_query():
    pattern = re.compile(relaxed_pattern("điện"), re.IGNORECASE)
    assert pattern.search("tien dien")
    assert pattern.search("tiền điện")


def test_relaxed_pattern_escapes_metacharacters():
    pattern = relaxed_pattern("a+b (c)?")
    assert re.search(pattern, "a+b (c)?")
    assert not re.search(pattern, "aab c")


@pytest.mark.parametrize(
    "a,b",
    [
        ("kitten", "sitting"),
        ("", "abc"),
        ("flaw", "lawn"),
        ("Hóa", "hoa"),
        ("xkcqz", "xkcqy"),
    ],
)
def test_edit_distance_is_symmetric(a, b):
    assert edit_distance(a, b) == edit_distance(b, a)


@pytest.mark.parametrize("text", SAMPLES)
def test_edit_distance_identity(text):
    assert edit_distance(text, text) == 0


def test_edit_distance_known_values():
    assert edit_distance("kitten", "sitting") == 3
    assert edit_distance("", "abc") == 3
    assert edit_distance("xkcqz", "xkcqy") == 1


def test_edit_distance_is_case_insensitive_and_counts_code_points():
    assert edit_distance("Invoice", "INVOICE") == 0
    # one code point each, several bytes in UTF-8
    assert edit_distance("ờ", "ở") == 1


def test_contextual_snippet_window():
    text = "a" * 100 + " invoice " + "b" * 100
    snippet = contextual_snippet(text, "invoice", context=10)
    assert snippet == "..." + "a" * 9 + " invoice " + "b" * 9 + "..."


def test_contextual_snippet_without_match():
    assert contextual_snippet("nothing to see", "invoice") is None
    assert contextual_snippet("", "invoice") is None


def test_contextual_snippet_accent_insensitive():
    snippet = contextual_snippet("Thanh toán hóa đơn ngay", "hoa don")
    assert snippet is not None
    assert "hóa đơn" in snippet
