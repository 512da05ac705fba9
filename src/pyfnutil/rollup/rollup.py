# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
import threading

from pyfnutil.lib.types import UtilizationPct
from pyfnutil.rollup.models import FiberNodeOverview, SplitObservation


class UtilizationRollup:
    """
    Per-fiber-node accumulation map shared by one page's aggregation pass.

    Merges are serialized by a lock so batch workers may feed the same map.

    Update policies
    ---------------
    Peak
        Last observation wins. Batches never share keys, so this is
        equivalent to insert-once and independent of batch completion order.
    Split
        The first observation of a fiber node is stored as-is. A later one
        replaces the stored low/high pair only when its low split is strictly
        greater AND its high split is greater or equal. The outcome may depend
        on window order when an observation improves one side only.
    Low split + OFDMA
        Tracked separately from the pair above; the stored value only ever
        increases (replaced when the new value is >= the stored one).
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._store: dict[str, FiberNodeOverview] = {}

    def merge_peak(self, key: str, fiber_node_name: str, value: float) -> None:
        with self._lock:
            self._store[key] = FiberNodeOverview(key=key,
                                                 fiber_node_name=fiber_node_name,
                                                 peak_utilization=UtilizationPct(value))

    def merge_split(self, obs: SplitObservation, with_ofdma: bool = False) -> bool:
        """
        Merge one sub-window observation.

        Returns:
            bool: True if the stored low/high pair was inserted or replaced.
        """
        combined = obs.low_split_plus_ofdma() if with_ofdma else None

        with self._lock:
            current = self._store.get(obs.key)
            if current is None:
                record = FiberNodeOverview(key=obs.key,
                                           fiber_node_name=obs.fiber_node_name,
                                           low_split_utilization=UtilizationPct(obs.low_split),
                                           high_split_utilization=UtilizationPct(obs.high_split))
                if combined is not None:
                    record.low_split_plus_ofdma_utilization = UtilizationPct(combined)
                self._store[obs.key] = record
                return True

            replaced = (obs.low_split > current.low_split_utilization
                        and obs.high_split >= current.high_split_utilization)
            if replaced:
                current.low_split_utilization = UtilizationPct(obs.low_split)
                current.high_split_utilization = UtilizationPct(obs.high_split)
                if obs.fiber_node_name:
                    current.fiber_node_name = obs.fiber_node_name

            if combined is not None and combined >= current.low_split_plus_ofdma_utilization:
                current.low_split_plus_ofdma_utilization = UtilizationPct(combined)

            return replaced

    def get(self, key: str) -> FiberNodeOverview | None:
        with self._lock:
            record = self._store.get(key)
            return record.model_copy() if record is not None else None

    def records(self) -> list[FiberNodeOverview]:
        """Copies of the stored records, in first-insert order."""
        with self._lock:
            return [r.model_copy() for r in self._store.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
