# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from pyfnutil.dms.snapshot import SnapshotDms
from pyfnutil.rollup.engine import RollupSettings, UtilizationEngine
from pyfnutil.rollup.models import RollupQuery, UtilizationMetric

ROOT            = "1/10"
BACKEND         = "1/20"
COLLECTOR       = "1/30"
PLATFORM        = "CISCO CBR-8 CCAP Platform"

BACKEND_TABLE   = 1200500
BE_TABLE        = 2000
CE_TABLE        = 3000
CH_TABLE        = 4000
OFDMA_TABLE     = 5000
SG_PID          = 3010
CH_PID          = 4010
OFDMA_PID       = 5010

VALID           = 5
T0              = datetime(2025, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


class SnapshotBuilder:
    """Builds snapshot documents for a root → backend → collector topology."""

    def __init__(self) -> None:
        self.elements: dict[str, dict[str, Any]] = {}

    def element(self, eid: str, protocol: str | None = None) -> dict[str, Any]:
        node = self.elements.setdefault(eid, {"protocol": None, "tables": {}, "trend": {}})
        if protocol is not None:
            node["protocol"] = protocol
        return node

    def _table(self, eid: str, table_id: int) -> dict[str, Any]:
        return self.element(eid)["tables"].setdefault(table_id, {"keys": [], "columns": {}})

    def add_row(self, eid: str, table_id: int, key: Any, **columns: Any) -> SnapshotBuilder:
        """Append a row; ``columns`` maps ``c<offset>`` to values (``c2=...``)."""
        table = self._table(eid, table_id)
        size = len(table["keys"])
        table["keys"].append(key)
        for name, value in columns.items():
            column_id = table_id + int(name[1:])
            table["columns"].setdefault(column_id, [None] * size).append(value)
        for values in table["columns"].values():
            if len(values) < size + 1:
                values.append(None)
        return self

    def backends(self, *backends: str, root: str = ROOT) -> SnapshotBuilder:
        for backend in backends:
            self.add_row(root, BACKEND_TABLE, backend)
        return self

    def service_group(self, key: str, name: str, collector: str = COLLECTOR, backend: str = BACKEND) -> SnapshotBuilder:
        """Backend row pointing to ``collector`` plus the matching collector entity row."""
        self.add_row(backend, BE_TABLE, key, c2=name, c54=collector)
        self.add_row(collector, CE_TABLE, key, c2=name)
        return self

    def channel(self, key: str, fiber_node: str, freq_mhz: float, collector: str = COLLECTOR, fn_name: str = "") -> SnapshotBuilder:
        self.add_row(collector, CH_TABLE, key, c3=fiber_node, c4=fn_name or fiber_node, c5=freq_mhz)
        return self

    def ofdma(self, key: str, fiber_node: str, collector: str = COLLECTOR) -> SnapshotBuilder:
        self.add_row(collector, OFDMA_TABLE, key, c3=fiber_node)
        return self

    def trend(self, eid: str, pid: int, index: str, samples: list[tuple[datetime, float, int]]) -> SnapshotBuilder:
        self.element(eid)["trend"][f"{pid}/{index}"] = [list(s) for s in samples]
        return self

    def values(self, index: str, values: list[float], pid: int = SG_PID,
               collector: str = COLLECTOR, start: int = 0, status: int = VALID) -> SnapshotBuilder:
        """Valid samples every 5 minutes from ``start`` minutes after T0."""
        return self.trend(collector, pid, index,
                          [(at(start + 5 * i), v, status) for i, v in enumerate(values)])

    def as_dict(self) -> dict[str, Any]:
        return {"elements": self.elements}

    def build(self) -> SnapshotDms:
        return SnapshotDms.from_dict(self.as_dict())


def make_query(metric: UtilizationMetric = UtilizationMetric.PEAK, hours: int = 1, **overrides: Any) -> RollupQuery:
    args: dict[str, Any] = {
        "root_element": ROOT,
        "parameter_id": CH_PID if metric.is_split else SG_PID,
        "backend_entity_table_id": BE_TABLE,
        "collector_entity_table_id": CH_TABLE if metric.is_split else CE_TABLE,
        "initial_time": T0,
        "final_time": T0 + timedelta(hours=hours),
        "metric": metric,
    }
    if metric is UtilizationMetric.SPLIT_OFDMA:
        args.update(ofdma_table_id=OFDMA_TABLE, ofdma_parameter_id=OFDMA_PID)
    args.update(overrides)
    return RollupQuery(**args)


def make_engine(dms: SnapshotDms, **settings: Any) -> UtilizationEngine:
    return UtilizationEngine(dms, RollupSettings(**settings))


@pytest.fixture()
def builder() -> SnapshotBuilder:
    """Root with one backend and one supported collector."""
    b = SnapshotBuilder()
    b.element(ROOT)
    b.backends(BACKEND)
    b.element(COLLECTOR, protocol=PLATFORM)
    return b
