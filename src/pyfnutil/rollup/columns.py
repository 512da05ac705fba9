# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from pyfnutil.rollup.formatting import format_utilization
from pyfnutil.rollup.models import (
    FiberNodeOverview,
    GridCell,
    GridRow,
    OutputColumn,
    UtilizationMetric,
)

_ID         = OutputColumn(name="ID", kind="string")
_FIBER_NODE = OutputColumn(name="Fiber Node", kind="string")

_METRIC_COLUMNS: dict[UtilizationMetric, list[tuple[OutputColumn, str]]] = {
    UtilizationMetric.PEAK: [
        (OutputColumn(name="Peak Utilization", kind="double"), "peak_utilization"),
    ],
    UtilizationMetric.SPLIT: [
        (OutputColumn(name="Low Split Utilization", kind="double"), "low_split_utilization"),
        (OutputColumn(name="High Split Utilization", kind="double"), "high_split_utilization"),
    ],
    UtilizationMetric.SPLIT_OFDMA: [
        (OutputColumn(name="Low Split Utilization", kind="double"), "low_split_utilization"),
        (OutputColumn(name="High Split Utilization", kind="double"), "high_split_utilization"),
        (OutputColumn(name="Low Split Plus OFDMA Utilization", kind="double"), "low_split_plus_ofdma_utilization"),
    ],
}


def output_columns(metric: UtilizationMetric) -> list[OutputColumn]:
    """Output schema selected by the metric flag."""
    return [_ID, _FIBER_NODE] + [col for col, _ in _METRIC_COLUMNS[metric]]


def to_row(record: FiberNodeOverview, metric: UtilizationMetric) -> GridRow:
    cells = [GridCell(value=record.key), GridCell(value=record.fiber_node_name)]
    for _, field in _METRIC_COLUMNS[metric]:
        value = float(getattr(record, field))
        cells.append(GridCell(value=value, display_value=format_utilization(value)))
    return GridRow(cells=cells)


def to_rows(records: list[FiberNodeOverview], metric: UtilizationMetric) -> list[GridRow]:
    return [to_row(r, metric) for r in records]
