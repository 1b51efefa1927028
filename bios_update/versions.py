"""Firmware version comparison.

Vendors do not agree on a version format. Dell reports plain dotted versions
("1.6.1"), Lenovo reports build codes with the version in parentheses
("N1CET63W (1.31 )"). Dotted strings are compared numerically, anything else
is compared as the literal string the vendor reported.
"""
from __future__ import annotations

import re
from typing import Optional

from packaging.version import Version

DOTTED_RE = re.compile(r"^[0-9]+(?:\.[0-9]+)*$")


def is_dotted(value: str) -> bool:
    return DOTTED_RE.match(value.strip()) is not None


def is_below(current: str, threshold: Optional[str]) -> bool:
    """Return True when ``current`` is older than ``threshold``.

    A missing threshold means the rule always applies.

    >>> is_below("1.5.0", "1.6.1")
    True
    >>> is_below("1.10.0", "1.9.0")
    False
    >>> is_below("N1CET63W (1.31 )", "N1CET63W (1.31 )")
    False
    """
    if threshold is None:
        return True
    if current == threshold:
        return False
    if is_dotted(current) and is_dotted(threshold):
        return Version(current.strip()) < Version(threshold.strip())
    return current < threshold
