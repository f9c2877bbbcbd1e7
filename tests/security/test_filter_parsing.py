"""Test that filter values can never escape their quotes."""

import pytest

from src.core import db_client


@pytest.mark.unit
def test_filter_parsing_escaped_double_quotes():
    """The value sanitize_param produces for 'foo"bar' is read back intact."""
    where, params = db_client.parse_filter('name = "foo\\"bar"')

    assert where == "name = ?"
    assert params == ['foo"bar']


@pytest.mark.unit
def test_filter_parsing_multiple_escaped_quotes():
    _, params = db_client.parse_filter('name = "a\\"b\\"c"')

    assert params == ['a"b"c']


@pytest.mark.unit
def test_filter_parsing_single_quotes_escaped():
    _, params = db_client.parse_filter("name = 'O\\'Reilly'")

    assert params == ["O'Reilly"]


@pytest.mark.unit
def test_filter_parsing_backslash():
    _, params = db_client.parse_filter('name = "\\\\"')

    assert params == ["\\"]


@pytest.mark.unit
def test_separator_inside_value_is_not_split():
    where, params = db_client.parse_filter('title = "a && b = \\"c\\"" && owner_id = "7"')

    assert where == "title = ? AND owner_id = ?"
    assert params == ['a && b = "c"', 7]


@pytest.mark.unit
@pytest.mark.parametrize(
    "value",
    ['foo"bar', 'a"b@example.com', "tab\there", "line\nbreak", "naïve ☕", "back\\slash"],
)
def test_sanitize_param_round_trips(value):
    where, params = db_client.parse_filter(f'email = "{db_client.sanitize_param(value)}"')

    assert where == "email = ?"
    assert params == [value]


@pytest.mark.unit
def test_injection_attempt_is_parameterized():
    """A value that tries to close its quote and add a clause stays a single value."""
    malicious_value = 'foo" || owner_id != "0'
    query = f'owner_id = "{db_client.sanitize_param(malicious_value)}"'

    where, params = db_client.parse_filter(query)

    assert where == "owner_id = ?"
    assert params == [malicious_value]


@pytest.mark.unit
@pytest.mark.parametrize(
    "query",
    [
        'name = "unterminated',
        'name == "x"',
        'name = "x" || id = "1"',
        'name = "x" && ',
        "name = x",
        'name; DROP TABLE tasks = "x"',
    ],
)
def test_malformed_filters_rejected(query):
    with pytest.raises(ValueError, match="Invalid filter syntax"):
        db_client.parse_filter(query)


@pytest.mark.unit
def test_empty_filter():
    assert db_client.parse_filter("") == ("", [])


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"), [("42", 42), ("1.5", 1.5), ("²", "²"), ("١٢", "١٢"), ("3.²", "3.²")]
)
def test_only_ascii_digits_become_numbers(raw, expected):
    assert db_client.parse_filter(f'id = "{raw}"') == ("id = ?", [expected])


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"), [("42", True), ("²", False), ("١", False), ("", False), ("4a", False)]
)
def test_is_record_id(value, expected):
    assert db_client.is_record_id(value) is expected
