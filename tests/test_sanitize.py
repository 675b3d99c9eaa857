"""
Tests for search and tag input sanitization.
"""
from core.sanitize import (
    MAX_SEARCH_LENGTH, MAX_TAGS, escape_like, sanitize_search_query, sanitize_tags, validate_uuid
)


def test_search_query_strips_markup_and_statement_separators():
    assert sanitize_search_query("  <b>calculus</b>; drop & more ") == "bcalculus/b drop  more"


def test_search_query_keeps_quotes_and_parentheses():
    assert sanitize_search_query(" O'Brien \"notes\" (part 2) ") == "O'Brien \"notes\" (part 2)"


def test_search_query_is_capped():
    assert len(sanitize_search_query("x" * 500)) == MAX_SEARCH_LENGTH


def test_search_query_empty():
    assert sanitize_search_query(None) == ""
    assert sanitize_search_query("   ") == ""


def test_escape_like_escapes_wildcards():
    assert escape_like("100%_done\\") == "100\\%\\_done\\\\"
    assert escape_like("plain") == "plain"


def test_tags_from_csv_are_trimmed_and_deduplicated():
    assert sanitize_tags(" calculus, exam ,calculus,,<b>") == ["calculus", "exam", "b"]


def test_tags_keep_first_occurrence_order():
    assert sanitize_tags(["b", "a", "b"]) == ["b", "a"]


def test_tags_are_bounded():
    assert len(sanitize_tags([f"t{i}" for i in range(50)])) == MAX_TAGS
    assert sanitize_tags(["x" * 80]) == ["x" * 50]


def test_tags_empty_input():
    assert sanitize_tags(None) == []
    assert sanitize_tags("") == []


def test_validate_uuid():
    assert validate_uuid("3f2b8c1e-4d5a-4b6c-8d7e-9f0a1b2c3d4e")
    assert not validate_uuid("not-a-uuid")
    assert not validate_uuid("")
