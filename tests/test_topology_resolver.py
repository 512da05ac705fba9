# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from collections.abc import Sequence

import pytest
from conftest import BACKEND, BE_TABLE, CE_TABLE, CH_TABLE, COLLECTOR, OFDMA_TABLE, PLATFORM, ROOT, SnapshotBuilder
from typing_extensions import override

from pyfnutil.dms.client import DmsError
from pyfnutil.dms.snapshot import SnapshotDms
from pyfnutil.lib.types import ProtocolTag, TableId
from pyfnutil.rollup.models import TableLayout, TableSnapshot
from pyfnutil.rollup.topology import TopologyResolver


def _resolver(dms: SnapshotDms, platforms: Sequence[str] = (PLATFORM,)) -> TopologyResolver:
    return TopologyResolver(dms, TableLayout(), TableId(1200500), [ProtocolTag(p) for p in platforms])


class _FailingDms(SnapshotDms):
    """Raises on every table request for ``failing`` elements."""

    def __init__(self, source: SnapshotDms, failing: set[str]) -> None:
        super().__init__(source._doc)
        self.failing = failing

    @override
    def get_table(self, element: str, table_id: TableId, filters: Sequence[str]) -> TableSnapshot | None:
        if element in self.failing:
            raise DmsError(f"timeout talking to {element}")
        return super().get_table(element, table_id, filters)


def test_resolve_collectors_keeps_backlog_order(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").service_group("sg-2", "FN-B")

    work = _resolver(builder.build()).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert len(work) == 1
    assert work[0].collector.element_id == COLLECTOR
    assert work[0].collector.protocol == PLATFORM
    assert [(r.key, r.name, r.fiber_node_id) for r in work[0].backlog] == [
        ("sg-1", "FN-A", "sg-1"),
        ("sg-2", "FN-B", "sg-2"),
    ]


@pytest.mark.parametrize("root", ["abc", "", "1", "x/y"])
def test_malformed_root_resolves_nothing(builder: SnapshotBuilder, root: str) -> None:
    builder.service_group("sg-1", "FN-A")
    assert _resolver(builder.build()).resolve_collectors(root, TableId(BE_TABLE)) == []


def test_unsupported_platform_is_skipped(builder: SnapshotBuilder) -> None:
    builder.element("1/31", protocol="Some Other CMTS")
    builder.service_group("sg-1", "FN-A").service_group("sg-9", "FN-Z", collector="1/31")

    work = _resolver(builder.build()).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert [w.collector.element_id for w in work] == [COLLECTOR]


def test_empty_allow_list_admits_every_platform(builder: SnapshotBuilder) -> None:
    builder.element("1/31", protocol="Some Other CMTS")
    builder.service_group("sg-1", "FN-A").service_group("sg-9", "FN-Z", collector="1/31")

    work = _resolver(builder.build(), platforms=()).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert [w.collector.element_id for w in work] == [COLLECTOR, "1/31"]


def test_collector_shared_by_backends_is_merged(builder: SnapshotBuilder) -> None:
    builder.backends("1/21")
    builder.service_group("sg-1", "FN-A")
    builder.service_group("sg-2", "FN-B", backend="1/21")
    builder.service_group("sg-1", "FN-A", backend="1/21")

    work = _resolver(builder.build()).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert len(work) == 1
    assert [r.key for r in work[0].backlog] == ["sg-1", "sg-2"]


def test_malformed_collector_reference_is_skipped(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A")
    builder.add_row(BACKEND, BE_TABLE, "sg-x", c2="FN-X", c54="not-an-element")

    work = _resolver(builder.build()).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert [r.key for w in work for r in w.backlog] == ["sg-1"]


def test_failing_backend_is_skipped(builder: SnapshotBuilder) -> None:
    builder.backends("1/21")
    builder.service_group("sg-1", "FN-A")
    builder.service_group("sg-2", "FN-B", backend="1/21")

    dms = _FailingDms(builder.build(), failing={BACKEND})
    work = _resolver(dms).resolve_collectors(ROOT, TableId(BE_TABLE))

    assert [r.key for w in work for r in w.backlog] == ["sg-2"]


def test_missing_backend_table_yields_empty_snapshot(builder: SnapshotBuilder) -> None:
    resolver = _resolver(builder.build())

    assert resolver.snapshot(BACKEND, TableId(BE_TABLE), []).is_empty()
    assert resolver.resolve_collectors(ROOT, TableId(BE_TABLE)) == []


def test_service_group_rows_filtered_by_key(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").service_group("sg-2", "FN-B")
    resolver = _resolver(builder.build())

    rows = resolver.service_group_rows(COLLECTOR, TableId(CE_TABLE), ["sg-2"])

    assert [(r.key, r.fiber_node_name) for r in rows] == [("sg-2", "FN-B")]
    assert len(resolver.service_group_rows(COLLECTOR, TableId(CE_TABLE))) == 2
    assert resolver.service_group_rows(COLLECTOR, TableId(CE_TABLE), []) == []


def test_channel_rows_map_fiber_node_and_frequency(builder: SnapshotBuilder) -> None:
    builder.channel("ch-1", "fn-1", 40.0, fn_name="Node 1")
    builder.channel("ch-2", "fn-1", 70.0, fn_name="Node 1")
    builder.channel("ch-3", "fn-2", 30.0)

    rows = _resolver(builder.build()).channel_rows(COLLECTOR, TableId(CH_TABLE), ["fn-1"])

    assert [(r.key, r.fiber_node_id, r.fiber_node_name, r.frequency_mhz) for r in rows] == [
        ("ch-1", "fn-1", "Node 1", 40.0),
        ("ch-2", "fn-1", "Node 1", 70.0),
    ]


def test_ofdma_rows(builder: SnapshotBuilder) -> None:
    builder.ofdma("of-1", "fn-1").ofdma("of-2", "fn-2")

    rows = _resolver(builder.build()).ofdma_rows(COLLECTOR, TableId(OFDMA_TABLE))

    assert [(r.key, r.fiber_node_id) for r in rows] == [("of-1", "fn-1"), ("of-2", "fn-2")]
