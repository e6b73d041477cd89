from __future__ import annotations

import allure
import pytest

from wdrc.sync.errors import InvalidIdentifier
from wdrc.sync.identifiers import decode_item_id, try_decode_item_id

pytestmark = [
    allure.epic("Change Capture"),
    allure.feature("Identifiers"),
]


@pytest.mark.parametrize(
    ("value", "expected"),
    [("Q42", 42), ("P31", 31), ("Q1", 1), ("L123456789", 123456789)],
)
def test_decode_strips_prefix(value: str, expected: int) -> None:
    assert decode_item_id(value) == expected


@pytest.mark.parametrize("value", ["", "Q", "Q0", "Q00", "Qabc", "Q-1", "Q1.5", "Q４２"])
def test_decode_rejects_malformed_or_zero_ids(value: str) -> None:
    with pytest.raises(InvalidIdentifier) as excinfo:
        decode_item_id(value)

    assert excinfo.value.value == value
    assert str(excinfo.value).startswith("Bad ID")


def test_try_decode_returns_none_instead_of_raising() -> None:
    assert try_decode_item_id("Q7") == 7
    assert try_decode_item_id("Q0") is None
    assert try_decode_item_id("Talk:Q1") is None
