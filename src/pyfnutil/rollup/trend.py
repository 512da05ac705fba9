# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import timedelta

import numpy as np

from pyfnutil.dms.client import AverageTrendInterval, DmsClient, TrendingType, TrendRecords
from pyfnutil.lib.types import NDArrayF64, RowKey
from pyfnutil.rollup.models import NO_DATA, ParameterLookup, PeakReduction, TimeWindow, TrendSample

DEFAULT_VALID_STATUS: int = 5
DEFAULT_TOP_N: int = 3

Reducer = Callable[[NDArrayF64], float]


def valid_values(samples: Sequence[TrendSample], valid_status: int = DEFAULT_VALID_STATUS) -> NDArrayF64:
    """Values of the samples whose status marks them valid."""
    return np.array([s.value for s in samples if s.status == valid_status], dtype=np.float64)


def reduce_max(values: NDArrayF64) -> float:
    if values.size == 0:
        return NO_DATA
    return float(values.max())


def reduce_mean(values: NDArrayF64) -> float:
    if values.size == 0:
        return NO_DATA
    return float(values.mean())


def reduce_top_average(values: NDArrayF64, n: int = DEFAULT_TOP_N) -> float:
    """Average of the ``n`` largest values (fewer if unavailable)."""
    if values.size == 0:
        return NO_DATA
    top = np.sort(values)[::-1][:n]
    return float(top.mean())


def peak_reducer(reduction: PeakReduction, top_n: int = DEFAULT_TOP_N) -> Reducer:
    if reduction is PeakReduction.TOP_AVERAGE:
        return lambda values: reduce_top_average(values, top_n)
    return reduce_max


def split_windows(window: TimeWindow, step: timedelta = timedelta(hours=1)) -> list[TimeWindow]:
    """
    Split ``[start, end)`` into contiguous, non-overlapping sub-windows of ``step``.

    The last sub-window is partial when the range is not a multiple of ``step``.
    """
    if step <= timedelta(0):
        raise ValueError(f"step must be positive, got {step}")

    windows: list[TimeWindow] = []
    cursor = window.start
    while cursor < window.end:
        upper = min(cursor + step, window.end)
        windows.append(TimeWindow(start=cursor, end=upper))
        cursor = upper
    return windows


def strip_parameter_prefix(trend_key: str) -> RowKey:
    """``"<pid>/<index>"`` → ``"<index>"``."""
    _, sep, index = trend_key.partition("/")
    return RowKey(index if sep else trend_key)


class TrendWindowAggregator:
    """
    Issues windowed trend queries for a batch of lookups and reduces the samples.

    A failed or empty response means "no data for this batch"; it is logged
    and never raised.
    """

    def __init__(self,
                 dms: DmsClient,
                 valid_status: int = DEFAULT_VALID_STATUS,
                 interval: AverageTrendInterval = AverageTrendInterval.FIVE_MIN) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._dms = dms
        self.valid_status = valid_status
        self.interval = interval

    def fetch(self, collector: str, batch: Sequence[ParameterLookup], window: TimeWindow) -> TrendRecords:
        if not batch:
            return {}
        try:
            records = self._dms.get_trend_data(collector, list(batch), window.start, window.end,
                                               interval=self.interval,
                                               trending=TrendingType.AVERAGE)
        except Exception as exc:
            self.logger.error(f"Trend query failed for {collector} ({len(batch)} lookups): {exc}")
            return {}

        if not records:
            self.logger.debug(f"No trend data for {collector} in [{window.start}, {window.end})")
            return {}
        return records

    def aggregate(self,
                  collector: str,
                  batch: Sequence[ParameterLookup],
                  window: TimeWindow,
                  reducer: Reducer) -> dict[RowKey, float]:
        """
        Reduce each returned key's valid samples.

        Keys absent from the response are absent from the result; keys with no
        valid sample map to ``NO_DATA``.
        """
        reduced: dict[RowKey, float] = {}
        for trend_key, samples in self.fetch(collector, batch, window).items():
            reduced[strip_parameter_prefix(trend_key)] = reducer(valid_values(samples or [], self.valid_status))
        return reduced

