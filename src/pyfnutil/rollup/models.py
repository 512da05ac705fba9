# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from pyfnutil.lib.types import (
    CellScalar,
    ElementIdStr,
    FiberNodeId,
    FrequencyMHz,
    ParameterId,
    ProtocolTag,
    RowKey,
    StringEnum,
    TableId,
    TrendStatus,
    UtilizationPct,
)

NO_DATA: float = -1.0
"""Sentinel utilization meaning "no valid data"; never a real measurement."""


def as_utc(ts: datetime) -> datetime:
    """Attach UTC to a naive time; trend timestamps are stored in UTC."""
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


class UtilizationMetric(StringEnum):
    PEAK        = "peak"
    SPLIT       = "split"
    SPLIT_OFDMA = "split_ofdma"

    @property
    def is_split(self) -> bool:
        return self is not UtilizationMetric.PEAK


class PeakReduction(StringEnum):
    MAX         = "max"
    TOP_AVERAGE = "top_average"


class WindowStrategy(StringEnum):
    FULL_RANGE  = "full_range"
    HOURLY      = "hourly"


class PagingMode(StringEnum):
    COLLECTOR   = "collector"
    BACKLOG     = "backlog"


class CursorStatus(StringEnum):
    READY       = "ready"
    EXHAUSTED   = "exhausted"


# ────────────────────────────────────────────────────────────────────────────────
# Table snapshot cells (tagged union resolved at the snapshot boundary)
# ────────────────────────────────────────────────────────────────────────────────
class StringCell(BaseModel):
    kind: Literal["string"] = "string"
    value: str              = Field(..., description="Cell value")
    display: str | None     = Field(default=None, description="Display value, when the table provides one")

    def as_str(self) -> str:
        return self.value

    def as_float(self) -> float | None:
        try:
            return float(self.value)
        except ValueError:
            return None


class NumberCell(BaseModel):
    kind: Literal["number"] = "number"
    value: float            = Field(..., description="Cell value")
    display: str | None     = Field(default=None, description="Display value, when the table provides one")

    def as_str(self) -> str:
        # Integral numbers index rows as "12", not "12.0"
        if self.value.is_integer():
            return str(int(self.value))
        return str(self.value)

    def as_float(self) -> float | None:
        return self.value


TableCell = Annotated[StringCell | NumberCell, Field(discriminator="kind")]


def to_cell(raw: CellScalar, display: str | None = None) -> StringCell | NumberCell:
    """Resolve a raw cell payload into the tagged cell union."""
    if isinstance(raw, bool):
        return StringCell(value=str(raw).lower(), display=display)
    if isinstance(raw, (int, float)):
        return NumberCell(value=float(raw), display=display)
    return StringCell(value="" if raw is None else str(raw), display=display)


class TableSnapshot(BaseModel):
    """Column-major table snapshot: ``columns[c][r]``."""
    columns: list[list[TableCell]] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.columns or len(self.columns[0]) == 0

    def column_count(self) -> int:
        return len(self.columns)

    def row_count(self) -> int:
        return 0 if not self.columns else len(self.columns[0])

    def column_str(self, index: int) -> list[str]:
        if index >= len(self.columns):
            return []
        return [cell.as_str() for cell in self.columns[index]]

    def column_float(self, index: int) -> list[float | None]:
        if index >= len(self.columns):
            return []
        return [cell.as_float() for cell in self.columns[index]]


# ────────────────────────────────────────────────────────────────────────────────
# Topology
# ────────────────────────────────────────────────────────────────────────────────
class TableLayout(BaseModel):
    """Column offsets, relative to the owning table id, of the columns the engine reads."""
    backend_fiber_node_offset: int      = Field(default=1, ge=1)
    backend_name_offset: int            = Field(default=2, ge=1)
    backend_collector_offset: int       = Field(default=54, ge=1)
    service_group_name_offset: int      = Field(default=2, ge=1)
    channel_name_offset: int            = Field(default=1, ge=1)
    channel_fiber_node_offset: int      = Field(default=3, ge=1)
    channel_fiber_node_name_offset: int = Field(default=4, ge=1)
    channel_frequency_offset: int       = Field(default=5, ge=1)
    ofdma_fiber_node_offset: int        = Field(default=3, ge=1)


class ElementMetadata(BaseModel):
    element_id: ElementIdStr
    protocol: ProtocolTag | None = None


class Collector(BaseModel):
    element_id: ElementIdStr
    protocol: ProtocolTag | None = None


class ServiceGroupRef(BaseModel):
    """One backend-entity row: a service group / fiber node owned by a collector."""
    key: RowKey
    name: str                   = ""
    fiber_node_id: FiberNodeId  = Field(default=FiberNodeId(""))


class CollectorWork(BaseModel):
    """A collector and the backlog of backend row keys still to process for it."""
    collector: Collector
    backlog: list[ServiceGroupRef] = Field(default_factory=list)


class EntityRow(BaseModel):
    key: RowKey
    fiber_node_id: FiberNodeId
    fiber_node_name: str                = ""
    channel_name: str                   = ""
    frequency_mhz: FrequencyMHz | None  = None


class ParameterLookup(BaseModel):
    parameter_id: ParameterId
    index: RowKey

    def trend_key(self) -> str:
        return f"{self.parameter_id}/{self.index}"


# ────────────────────────────────────────────────────────────────────────────────
# Trend data
# ────────────────────────────────────────────────────────────────────────────────
class TrendSample(BaseModel):
    value: float
    status: TrendStatus
    timestamp: datetime | None = None


class TimeWindow(BaseModel):
    """Half-open time window ``[start, end)``."""
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> TimeWindow:
        if self.end <= self.start:
            raise ValueError(f"Window end {self.end} must be after start {self.start}")
        return self

    def duration(self) -> timedelta:
        return self.end - self.start


# ────────────────────────────────────────────────────────────────────────────────
# Rollup records
# ────────────────────────────────────────────────────────────────────────────────
class FiberNodeOverview(BaseModel):
    key: str
    fiber_node_name: str                                = ""
    peak_utilization: UtilizationPct                    = Field(default=UtilizationPct(NO_DATA))
    low_split_utilization: UtilizationPct               = Field(default=UtilizationPct(NO_DATA))
    high_split_utilization: UtilizationPct              = Field(default=UtilizationPct(NO_DATA))
    low_split_plus_ofdma_utilization: UtilizationPct    = Field(default=UtilizationPct(NO_DATA))


class SplitObservation(BaseModel):
    """One fiber node's split utilization over one sub-window."""
    key: str
    fiber_node_name: str    = ""
    low_split: float        = NO_DATA
    high_split: float       = NO_DATA
    ofdma: float            = NO_DATA
    has_high_channels: bool = False

    def low_split_plus_ofdma(self) -> float:
        """
        Low split plus OFDMA.

        Any high-split channel on the fiber node voids the sum, whether or not
        it reported valid samples in the window.
        """
        if self.low_split == NO_DATA or self.ofdma == NO_DATA:
            return NO_DATA
        if self.has_high_channels or self.high_split != NO_DATA:
            return NO_DATA
        return self.low_split + self.ofdma


# ────────────────────────────────────────────────────────────────────────────────
# Output
# ────────────────────────────────────────────────────────────────────────────────
class OutputColumn(BaseModel):
    name: str
    kind: Literal["string", "double"]


class GridCell(BaseModel):
    value: str | float
    display_value: str | None = None


class GridRow(BaseModel):
    cells: list[GridCell]

    @property
    def key(self) -> str:
        return str(self.cells[0].value)


class Page(BaseModel):
    rows: list[GridRow]     = Field(default_factory=list)
    has_next_page: bool     = False


# ────────────────────────────────────────────────────────────────────────────────
# Query
# ────────────────────────────────────────────────────────────────────────────────
class RollupQuery(BaseModel):
    """Arguments of one utilization query invocation."""
    root_element: str                                   = Field(..., description="Front-end element identifier '<dmaId>/<elementId>'")
    parameter_id: ParameterId                           = Field(..., description="Requested utilization column parameter id")
    backend_entity_table_id: TableId                    = Field(..., description="Backend entity table parameter id")
    collector_entity_table_id: TableId                  = Field(..., description="Collector (CCAP) entity table parameter id")
    ofdma_table_id: TableId | None                      = Field(default=None, description="OFDMA channel table parameter id")
    ofdma_parameter_id: ParameterId | None              = Field(default=None, description="OFDMA utilization parameter id")
    initial_time: datetime | None                       = Field(default=None, description="Start of the range; defaults to final_time minus the default range")
    final_time: datetime | None                         = Field(default=None, description="End of the range; defaults to now")
    metric: UtilizationMetric                           = Field(default=UtilizationMetric.PEAK, description="Output schema / merge policy")
    peak_reduction: PeakReduction                       = Field(default=PeakReduction.MAX, description="Reduction used by the peak metric")
    paging: PagingMode                                  = Field(default=PagingMode.COLLECTOR, description="Unit of work consumed per page")

    @field_validator("initial_time", "final_time")
    @classmethod
    def _aware_times(cls, value: datetime | None) -> datetime | None:
        return None if value is None else as_utc(value)

    @model_validator(mode="after")
    def _check_query(self) -> RollupQuery:
        if self.initial_time is not None and self.final_time is not None and self.final_time <= self.initial_time:
            raise ValueError("final_time must be after initial_time")
        if self.metric is UtilizationMetric.SPLIT_OFDMA and (self.ofdma_table_id is None or self.ofdma_parameter_id is None):
            raise ValueError("split_ofdma requires ofdma_table_id and ofdma_parameter_id")
        return self

    def window_strategy(self) -> WindowStrategy:
        return WindowStrategy.HOURLY if self.metric.is_split else WindowStrategy.FULL_RANGE

    def resolve_range(self, default_hours: int, now: datetime | None = None) -> TimeWindow:
        """Resolve the query range, defaulting to the preceding ``default_hours``."""
        span = timedelta(hours=default_hours)
        if self.initial_time is not None and self.final_time is not None:
            return TimeWindow(start=self.initial_time, end=self.final_time)
        if self.final_time is not None:
            return TimeWindow(start=self.final_time - span, end=self.final_time)
        end = as_utc(now) if now is not None else datetime.now(tz=timezone.utc)
        if self.initial_time is not None:
            return TimeWindow(start=self.initial_time, end=end)
        return TimeWindow(start=end - span, end=end)
