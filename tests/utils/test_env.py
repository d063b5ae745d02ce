"""Tests for value coercion helpers."""

from __future__ import annotations

import pytest

from utils import env


@pytest.mark.parametrize(
    ("value", "expected"),
    [(" 12 ", 12), ("", 5), (None, 5), (True, 5), ("x", 5), (3.9, 3), (-1, 5), (1000, 5)],
)
def test_safe_int(value: object, expected: int) -> None:
    assert env.safe_int(value, 5, min_value=0, max_value=255) == expected
