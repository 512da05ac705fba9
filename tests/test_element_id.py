# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import pytest

from pyfnutil.lib.element_id import ElementId


def test_parse_valid_identifier() -> None:
    eid = ElementId.parse("12/345")

    assert eid is not None
    assert eid.dma_id == 12
    assert eid.element_id == 345
    assert eid.to_str() == "12/345"
    assert str(eid) == "12/345"


def test_parse_uses_first_two_segments() -> None:
    eid = ElementId.parse("1/2/3")
    assert eid == ElementId(1, 2)


@pytest.mark.parametrize("value", ["abc", "", None, "1", "1/x", "x/1", "-1/2", "1/-2", "/"])
def test_parse_malformed_returns_none(value: str | None) -> None:
    assert ElementId.parse(value) is None


def test_constructor_rejects_negative_ids() -> None:
    with pytest.raises(ValueError):
        ElementId(-1, 0)


def test_equality_and_hash() -> None:
    a = ElementId.parse(" 3/4 ")
    b = ElementId(3, 4)

    assert a == b
    assert len({a, b}) == 1
    assert ElementId(3, 5) != b
