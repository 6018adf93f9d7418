import pytest

from linguapairs.params import parse_int_param


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 10),
        ("", 10),
        ("   ", 10),
        ("abc", 10),
        ("1.5", 10),
        ("NaN", 10),
        ("inf", 10),
        ("7", 7),
        ("7.0", 7),
        (" 12 ", 12),
    ],
)
def test_parse_int_param_defaults(raw, expected):
    assert parse_int_param(raw, default=10) == expected


def test_parse_int_param_clamps():
    assert parse_int_param("0", default=10, minimum=1, maximum=50) == 1
    assert parse_int_param("-3", default=10, minimum=1, maximum=50) == 1
    assert parse_int_param("500", default=10, minimum=1, maximum=50) == 50
    assert parse_int_param("25", default=10, minimum=1, maximum=50) == 25


def test_parse_int_param_default_is_not_clamped():
    assert parse_int_param("x") is None
