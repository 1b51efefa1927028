import doctest

import pytest

import bios_update.versions as versions
from bios_update.versions import is_below, is_dotted


@pytest.mark.parametrize(
    "current,threshold,expected",
    [
        ("1.5.0", "1.6.1", True),
        ("1.6.1", "1.6.1", False),
        ("1.7.0", "1.6.1", False),
        ("1.9.0", "1.10.0", True),
        ("1.6", "1.6.0", False),
        ("N1CET63W (1.31 )", "N1CET63W (1.31 )", False),
        ("N1CET52W (1.20 )", "N1CET63W (1.31 )", True),
        ("N1CET70W (1.38 )", "N1CET63W (1.31 )", False),
        ("Q78 Ver. 01.05.01", "Q78 Ver. 01.07.02", True),
    ],
)
def test_is_below(current: str, threshold: str, expected: bool) -> None:
    assert is_below(current, threshold) is expected


def test_missing_threshold_always_applies() -> None:
    assert is_below("anything", None) is True
    assert is_below("", None) is True


def test_mixed_formats_fall_back_to_string_comparison() -> None:
    # "1.10" > "1.9" numerically but the other side is not dotted
    assert is_below("1.10", "1.9a") is True
    assert is_below("garbage", "1.2.3") is False


def test_is_dotted() -> None:
    assert is_dotted("1.6.1")
    assert is_dotted(" 12 ")
    assert not is_dotted("1.6.1a")
    assert not is_dotted("N1CET63W (1.31 )")
    assert not is_dotted("")


def test_doctests() -> None:
    result = doctest.testmod(versions)
    assert result.failed == 0
