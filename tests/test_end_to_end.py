# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from conftest import CH_PID, COLLECTOR, OFDMA_PID, SnapshotBuilder, at, make_engine, make_query

from pyfnutil.rollup.cursor import PageCursor
from pyfnutil.rollup.models import NO_DATA, GridRow, PeakReduction, UtilizationMetric


def _cells(row: GridRow) -> list[str | float]:
    return [c.value for c in row.cells]


def _displays(row: GridRow) -> list[str | None]:
    return [c.display_value for c in row.cells[2:]]


def test_top_average_peak(builder: SnapshotBuilder) -> None:
    """
    One Collector, Five Valid Samples, Top-3 Average Is 30.
    """
    builder.service_group("sg-1", "FN-A").values("sg-1", [10.0, 20.0, 30.0, 40.0, 5.0])
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query(peak_reduction=PeakReduction.TOP_AVERAGE))

    assert len(rows) == 1
    assert _cells(rows[0]) == ["sg-1", "FN-A", 30.0]
    assert _displays(rows[0]) == ["30.00 %"]


def test_max_peak_is_default(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").values("sg-1", [10.0, 20.0, 30.0, 40.0, 5.0])
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query())

    assert _cells(rows[0])[2] == 40.0


def test_no_valid_samples_is_not_available(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").values("sg-1", [10.0, 20.0], status=3)
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query())

    assert _cells(rows[0])[2] == NO_DATA
    assert _displays(rows[0]) == ["N/A"]


def test_low_and_high_split(builder: SnapshotBuilder) -> None:
    """
    Channels At 40 And 70 MHz Land In The Low And High Split Respectively.
    """
    builder.service_group("fn-1", "Node 1")
    builder.channel("ch-1", "fn-1", 40.0, fn_name="Node 1")
    builder.channel("ch-2", "fn-1", 70.0, fn_name="Node 1")
    builder.values("ch-1", [20.0, 20.0], pid=CH_PID)
    builder.values("ch-2", [80.0, 80.0], pid=CH_PID)
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query(UtilizationMetric.SPLIT))

    assert len(rows) == 1
    assert _cells(rows[0]) == ["fn-1", "Node 1", 20.0, 80.0]
    assert _displays(rows[0]) == ["20.00 %", "80.00 %"]


def test_channel_at_threshold_is_high_split(builder: SnapshotBuilder) -> None:
    builder.service_group("fn-1", "Node 1")
    builder.channel("ch-1", "fn-1", 65.0)
    builder.values("ch-1", [50.0], pid=CH_PID)
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query(UtilizationMetric.SPLIT))

    assert _cells(rows[0])[2:] == [NO_DATA, 50.0]


def test_split_uses_hourly_averages(builder: SnapshotBuilder) -> None:
    builder.service_group("fn-1", "Node 1")
    builder.channel("ch-1", "fn-1", 30.0)
    builder.channel("ch-2", "fn-1", 80.0)
    # hour 1: low avg 15, high avg 50; hour 2: low avg 25, high avg 50
    builder.trend(COLLECTOR, CH_PID, "ch-1", [(at(0), 10.0, 5), (at(5), 20.0, 5), (at(60), 20.0, 5), (at(65), 30.0, 5)])
    builder.trend(COLLECTOR, CH_PID, "ch-2", [(at(0), 50.0, 5), (at(60), 50.0, 5)])
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query(UtilizationMetric.SPLIT, hours=2))

    assert _cells(rows[0])[2:] == [25.0, 50.0]


def test_low_split_plus_ofdma(builder: SnapshotBuilder) -> None:
    builder.service_group("fn-1", "Node 1")
    builder.channel("ch-1", "fn-1", 40.0)
    builder.ofdma("of-1", "fn-1")
    builder.trend(COLLECTOR, CH_PID, "ch-1", [(at(0), 10.0, 5), (at(60), 30.0, 5)])
    builder.trend(COLLECTOR, OFDMA_PID, "of-1", [(at(0), 5.0, 5), (at(60), 2.0, 5)])
    cursor = PageCursor(make_engine(builder.build()))

    query = make_query(UtilizationMetric.SPLIT_OFDMA, hours=2)
    rows = cursor.collect_rows(query)

    assert [c.name for c in cursor.columns(query)][-1] == "Low Split Plus OFDMA Utilization"
    assert _cells(rows[0])[2:] == [30.0, NO_DATA, 32.0]
    assert _displays(rows[0]) == ["30.00 %", "N/A", "32.00 %"]


def test_high_split_channel_without_samples_voids_combined(builder: SnapshotBuilder) -> None:
    builder.service_group("fn-1", "Node 1")
    builder.channel("ch-1", "fn-1", 40.0)
    builder.channel("ch-2", "fn-1", 80.0)
    builder.ofdma("of-1", "fn-1")
    builder.trend(COLLECTOR, CH_PID, "ch-1", [(at(0), 10.0, 5)])
    builder.trend(COLLECTOR, CH_PID, "ch-2", [(at(0), 90.0, 1)])
    builder.trend(COLLECTOR, OFDMA_PID, "of-1", [(at(0), 5.0, 5)])
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query(UtilizationMetric.SPLIT_OFDMA))

    assert _cells(rows[0])[2:] == [10.0, NO_DATA, NO_DATA]


def test_malformed_root_yields_no_rows(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").values("sg-1", [10.0])
    cursor = PageCursor(make_engine(builder.build()))

    pages = list(cursor.iter_pages(make_query(root_element="abc")))

    assert len(pages) == 1
    assert pages[0].rows == []
    assert pages[0].has_next_page is False


def test_key_missing_from_trend_response_produces_no_row(builder: SnapshotBuilder) -> None:
    builder.service_group("sg-1", "FN-A").service_group("sg-2", "FN-B")
    builder.values("sg-1", [10.0])
    cursor = PageCursor(make_engine(builder.build()))

    rows = cursor.collect_rows(make_query())

    assert [r.key for r in rows] == ["sg-1"]


def test_parallel_batches_match_sequential(builder: SnapshotBuilder) -> None:
    for i in range(60):
        builder.service_group(f"sg-{i}", f"FN-{i}").values(f"sg-{i}", [float(i), float(i) / 2])
    dms = builder.build()
    query = make_query()

    sequential = PageCursor(make_engine(dms)).collect_rows(query)
    parallel = PageCursor(make_engine(dms, max_workers=4)).collect_rows(query)

    assert len(sequential) == 60
    assert {r.key: _cells(r) for r in parallel} == {r.key: _cells(r) for r in sequential}
