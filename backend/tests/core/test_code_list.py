"""Code List — normalization of submitted codes.

Tests:
    - Whitespace trimmed, blanks dropped, duplicates removed, order kept
    - Pasted text split on newlines and commas
    - split_existing partitions against persisted codes
"""

from app.core.code_list import normalize_codes, parse_code_text, split_existing


def test_normalize_strips_and_drops_blanks():
    assert normalize_codes(["  SAVE1 ", "", "   ", "SAVE2"]) == ["SAVE1", "SAVE2"]


def test_normalize_dedups_keeping_first_occurrence():
    assert normalize_codes(["B", "A", "B", " A "]) == ["B", "A"]


def test_normalize_is_case_sensitive():
    assert normalize_codes(["save", "SAVE"]) == ["save", "SAVE"]


def test_normalize_tolerates_none_entries():
    assert normalize_codes([None, "X"]) == ["X"]


def test_parse_code_text_splits_newlines_and_commas():
    text = "CODE1\r\nCODE2,CODE3\n\n, CODE4 \nCODE1"
    assert parse_code_text(text) == ["CODE1", "CODE2", "CODE3", "CODE4"]


def test_parse_code_text_empty():
    assert parse_code_text("") == []
    assert parse_code_text(None) == []


def test_split_existing():
    fresh, skipped = split_existing(["A", "B", "C"], {"B"})
    assert fresh == ["A", "C"]
    assert skipped == ["B"]
