# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pyfnutil.lib.types import ParameterId, RowKey
from pyfnutil.rollup.models import ParameterLookup

DEFAULT_BATCH_SIZE: int = 25


class BatchPartitioner:
    """
    Split ordered parameter lookups into fixed-size batches.

    The batch size bounds the payload of one trend request; 25 matches the
    per-request limit of the trend service.
    """

    def __init__(self, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size

    def lookups(self, parameter_id: ParameterId, keys: Iterable[RowKey | str]) -> list[ParameterLookup]:
        """Pair ``parameter_id`` with every key, keeping order."""
        return [ParameterLookup(parameter_id=parameter_id, index=RowKey(str(k))) for k in keys]

    def partition(self, lookups: Sequence[ParameterLookup]) -> list[list[ParameterLookup]]:
        """
        Return ``ceil(N / batch_size)`` batches in original order.

        Concatenating the batches yields ``lookups`` exactly.
        """
        size = self.batch_size
        return [list(lookups[i:i + size]) for i in range(0, len(lookups), size)]

    def partition_keys(self, parameter_id: ParameterId, keys: Iterable[RowKey | str]) -> list[list[ParameterLookup]]:
        return self.partition(self.lookups(parameter_id, keys))
