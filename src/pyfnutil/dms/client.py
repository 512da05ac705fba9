# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from enum import Enum

from pyfnutil.lib.types import TableId
from pyfnutil.rollup.models import ElementMetadata, ParameterLookup, TableSnapshot, TrendSample

TrendRecords = dict[str, list[TrendSample]]


class DmsError(Exception):
    """Raised by a DMS client when a remote call cannot be completed."""


class AverageTrendInterval(Enum):
    FIVE_MIN    = "5min"
    ONE_HOUR    = "1h"
    ONE_DAY     = "1d"


class TrendingType(Enum):
    AVERAGE     = "average"
    REAL_TIME   = "realtime"


class DmsClient(ABC):
    """
    Remote collaborators consumed by the rollup engine.

    Calls are blocking. Implementations may raise ``DmsError``; the engine
    treats any failure as "no data" for the scope of that call.
    """

    @abstractmethod
    def get_table(self, element: str, table_id: TableId, filters: Sequence[str]) -> TableSnapshot | None:
        """
        Return a column-major snapshot of ``table_id`` on ``element``.

        Recognized filter keywords: ``forceFullTable=true``, ``columns=<ids>``
        and ``fullFilter=(<col>==<v> OR ...)``, joined with ``;``.
        """

    @abstractmethod
    def get_element_metadata(self, element: str) -> ElementMetadata | None:
        """Resolve the platform identity (protocol tag) of an element."""

    @abstractmethod
    def get_trend_data(self,
                       element: str,
                       lookups: Sequence[ParameterLookup],
                       start: datetime,
                       end: datetime,
                       interval: AverageTrendInterval = AverageTrendInterval.FIVE_MIN,
                       trending: TrendingType = TrendingType.AVERAGE) -> TrendRecords | None:
        """
        Return averaged trend samples in ``[start, end)`` keyed ``"<pid>/<index>"``.

        Only samples whose status equals the valid status code carry data.
        """
