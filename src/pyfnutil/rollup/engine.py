# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import timedelta
from typing import TypeVar

from pydantic import BaseModel, Field

from pyfnutil.dms.client import DmsClient
from pyfnutil.lib.types import FiberNodeId, ProtocolTag, RowKey, TableId
from pyfnutil.rollup.batching import DEFAULT_BATCH_SIZE, BatchPartitioner
from pyfnutil.rollup.models import (
    NO_DATA,
    Collector,
    EntityRow,
    ParameterLookup,
    RollupQuery,
    ServiceGroupRef,
    SplitObservation,
    TableLayout,
    TimeWindow,
    UtilizationMetric,
    WindowStrategy,
)
from pyfnutil.rollup.rollup import UtilizationRollup
from pyfnutil.rollup.topology import TopologyResolver
from pyfnutil.rollup.trend import (
    DEFAULT_TOP_N,
    DEFAULT_VALID_STATUS,
    Reducer,
    TrendWindowAggregator,
    peak_reducer,
    reduce_mean,
    split_windows,
)

T = TypeVar("T")


class RollupSettings(BaseModel):
    """Tunables of the rollup pipeline."""
    batch_size: int                     = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    backlog_slice_size: int             = Field(default=10, ge=1)
    split_threshold_mhz: float          = Field(default=65.0)
    valid_status: int                   = Field(default=DEFAULT_VALID_STATUS)
    default_range_hours: int            = Field(default=24, ge=1)
    window_minutes: int                 = Field(default=60, ge=1)
    top_n: int                          = Field(default=DEFAULT_TOP_N, ge=1)
    max_workers: int                    = Field(default=1, ge=1)
    backend_table_id: TableId           = Field(default=TableId(1200500))
    allowed_platforms: list[ProtocolTag] = Field(default_factory=lambda: [ProtocolTag("CISCO CBR-8 CCAP Platform"),
                                                                          ProtocolTag("Harmonic CableOs")])
    layout: TableLayout                 = Field(default_factory=TableLayout)

    @classmethod
    def from_system_config(cls) -> RollupSettings:
        from pyfnutil.config.system_config_settings import SystemConfigSettings as SCS

        return cls(batch_size=SCS.batch_size(),
                   backlog_slice_size=SCS.backlog_slice_size(),
                   split_threshold_mhz=SCS.split_threshold_mhz(),
                   valid_status=SCS.valid_status(),
                   default_range_hours=SCS.default_range_hours(),
                   window_minutes=SCS.window_minutes(),
                   top_n=SCS.top_n(),
                   max_workers=SCS.max_workers(),
                   backend_table_id=SCS.backend_table_id(),
                   allowed_platforms=SCS.allowed_platforms(),
                   layout=SCS.table_layout())

    def window_step(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)


class UtilizationEngine:
    """
    One parameterized resolve → batch → aggregate → rollup pipeline.

    The metric selects both the merge policy and the windowing strategy:
    ``PEAK`` reduces the full range once (max or top-N average), ``SPLIT`` and
    ``SPLIT_OFDMA`` average per sub-window and merge each window as it completes.

    With ``max_workers > 1`` the batches of a slice are fanned out over worker
    threads through ``asyncio``; the caller must not already be running an
    event loop in the current thread.
    """

    def __init__(self, dms: DmsClient, settings: RollupSettings | None = None) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or RollupSettings()
        self.resolver = TopologyResolver(dms,
                                         self.settings.layout,
                                         self.settings.backend_table_id,
                                         self.settings.allowed_platforms)
        self.partitioner = BatchPartitioner(self.settings.batch_size)
        self.aggregator = TrendWindowAggregator(dms, valid_status=self.settings.valid_status)

    # ── fan-out ─────────────────────────────────────────────────────────────

    def _map_batches(self, fn: Callable[[list[ParameterLookup]], T], batches: Sequence[list[ParameterLookup]]) -> list[T]:
        if self.settings.max_workers <= 1 or len(batches) <= 1:
            return [fn(batch) for batch in batches]
        return asyncio.run(self._fan_out(fn, batches))

    async def _fan_out(self, fn: Callable[[list[ParameterLookup]], T], batches: Sequence[list[ParameterLookup]]) -> list[T]:
        sem = asyncio.Semaphore(self.settings.max_workers)

        async def _one(batch: list[ParameterLookup]) -> T:
            async with sem:
                return await asyncio.to_thread(fn, batch)

        return list(await asyncio.gather(*[_one(b) for b in batches]))

    # ── slices ──────────────────────────────────────────────────────────────

    def process_slice(self,
                      query: RollupQuery,
                      window: TimeWindow,
                      collector: Collector,
                      refs: Sequence[ServiceGroupRef],
                      rollup: UtilizationRollup,
                      filtered: bool = False) -> None:
        """
        Run one collector (or one backlog slice of it) through the pipeline.

        ``filtered`` restricts the collector entity table request to ``refs``
        instead of fetching the full table.
        """
        if not refs:
            return
        if query.window_strategy() is WindowStrategy.FULL_RANGE:
            self._process_peak(query, window, collector, refs, rollup, filtered)
        else:
            self._process_split(query, window, collector, refs, rollup, filtered)

    def _process_peak(self,
                      query: RollupQuery,
                      window: TimeWindow,
                      collector: Collector,
                      refs: Sequence[ServiceGroupRef],
                      rollup: UtilizationRollup,
                      filtered: bool) -> None:
        element = collector.element_id
        keys = [r.key for r in refs]
        rows = self.resolver.service_group_rows(element, query.collector_entity_table_id,
                                                keys if filtered else None)
        names = {row.key: row.fiber_node_name for row in rows}
        if not names:
            self.logger.debug(f"Collector {element}: no service-group rows")
            return

        reducer = peak_reducer(query.peak_reduction, self.settings.top_n)

        def _run(batch: list[ParameterLookup]) -> int:
            reduced = self.aggregator.aggregate(element, batch, window, reducer)
            merged = 0
            for key in dict.fromkeys(lookup.index for lookup in batch):
                if key in names and key in reduced:
                    rollup.merge_peak(key, names[key], reduced[key])
                    merged += 1
            return merged

        batches = self.partitioner.partition_keys(query.parameter_id, keys)
        merged = sum(self._map_batches(_run, batches))
        self.logger.debug(f"Collector {element}: {merged} peak record(s) from {len(batches)} batch(es)")

    def _process_split(self,
                       query: RollupQuery,
                       window: TimeWindow,
                       collector: Collector,
                       refs: Sequence[ServiceGroupRef],
                       rollup: UtilizationRollup,
                       filtered: bool) -> None:
        element = collector.element_id
        fn_ids = list(dict.fromkeys(r.fiber_node_id for r in refs))
        wanted = set(fn_ids)

        channels = [row for row in self.resolver.channel_rows(element, query.collector_entity_table_id,
                                                              fn_ids if filtered else None)
                    if row.fiber_node_id in wanted]
        if not channels:
            self.logger.debug(f"Collector {element}: no channel rows for {len(fn_ids)} fiber node(s)")
            return

        with_ofdma = query.metric is UtilizationMetric.SPLIT_OFDMA
        ofdma: list[EntityRow] = []
        if with_ofdma and query.ofdma_table_id is not None:
            ofdma = [row for row in self.resolver.ofdma_rows(element, query.ofdma_table_id,
                                                             fn_ids if filtered else None)
                     if row.fiber_node_id in wanted]

        channel_batches = self.partitioner.partition_keys(query.parameter_id, [c.key for c in channels])
        ofdma_batches: list[list[ParameterLookup]] = []
        if ofdma and query.ofdma_parameter_id is not None:
            ofdma_batches = self.partitioner.partition_keys(query.ofdma_parameter_id, [o.key for o in ofdma])

        names = {r.fiber_node_id: r.name for r in refs}
        for c in channels:
            if c.fiber_node_name:
                names[c.fiber_node_id] = c.fiber_node_name

        for sub in split_windows(window, self.settings.window_step()):
            channel_avg = self._window_averages(element, channel_batches, sub, reduce_mean)
            ofdma_avg = self._window_averages(element, ofdma_batches, sub, reduce_mean) if ofdma_batches else {}
            for obs in self.split_observations(channels, channel_avg, ofdma, ofdma_avg, names):
                rollup.merge_split(obs, with_ofdma=with_ofdma)

    def _window_averages(self,
                         element: str,
                         batches: Sequence[list[ParameterLookup]],
                         window: TimeWindow,
                         reducer: Reducer) -> dict[RowKey, float]:
        merged: dict[RowKey, float] = {}
        for part in self._map_batches(lambda b: self.aggregator.aggregate(element, b, window, reducer), batches):
            merged.update(part)
        return merged

    def split_observations(self,
                           channels: Sequence[EntityRow],
                           channel_avg: dict[RowKey, float],
                           ofdma: Sequence[EntityRow],
                           ofdma_avg: dict[RowKey, float],
                           names: dict[FiberNodeId, str]) -> list[SplitObservation]:
        """
        Build one observation per fiber node for a single sub-window.

        Channels below the split threshold feed the low split, the rest the high
        split; each side is the plain average of its channels' valid values. A fiber
        node with any high-split channel is flagged even when none of those
        channels reported valid data, which voids its low split plus OFDMA.
        """
        threshold = self.settings.split_threshold_mhz
        low: dict[FiberNodeId, list[float]] = {}
        high: dict[FiberNodeId, list[float]] = {}
        high_channels: set[FiberNodeId] = set()
        for channel in channels:
            low.setdefault(channel.fiber_node_id, [])
            high.setdefault(channel.fiber_node_id, [])
            if channel.frequency_mhz is None:
                continue
            is_low = channel.frequency_mhz < threshold
            if not is_low:
                high_channels.add(channel.fiber_node_id)
            value = channel_avg.get(channel.key, NO_DATA)
            if value != NO_DATA:
                (low if is_low else high)[channel.fiber_node_id].append(value)

        ofdma_values: dict[FiberNodeId, list[float]] = {}
        for row in ofdma:
            value = ofdma_avg.get(row.key, NO_DATA)
            if value != NO_DATA:
                ofdma_values.setdefault(row.fiber_node_id, []).append(value)

        def _avg(values: list[float]) -> float:
            return sum(values) / len(values) if values else NO_DATA

        return [
            SplitObservation(key=fn_id,
                             fiber_node_name=names.get(fn_id, ""),
                             low_split=_avg(low[fn_id]),
                             high_split=_avg(high[fn_id]),
                             ofdma=_avg(ofdma_values.get(fn_id, [])),
                             has_high_channels=fn_id in high_channels)
            for fn_id in low
        ]
