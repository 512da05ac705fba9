# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from typing_extensions import override

from pyfnutil.dms.client import (
    AverageTrendInterval,
    DmsClient,
    DmsError,
    TrendingType,
    TrendRecords,
)
from pyfnutil.dms.filters import ParsedTableFilter
from pyfnutil.lib.element_id import ElementId
from pyfnutil.lib.types import CellScalar, ElementIdStr, PathLike, ProtocolTag, TableId, TrendStatus
from pyfnutil.rollup.models import (
    ElementMetadata,
    ParameterLookup,
    TableSnapshot,
    TrendSample,
    to_cell,
)


class SnapshotTable(BaseModel):
    """
    One table of a snapshot.

    ``keys`` is the index column (id ``key_column_id``, default ``table_id + 1``);
    ``columns`` maps column parameter ids to their values, row-aligned with ``keys``.
    """
    keys: list[CellScalar]                          = Field(default_factory=list)
    columns: dict[int, list[CellScalar]]            = Field(default_factory=dict)
    key_column_id: int | None                       = None


class SnapshotElement(BaseModel):
    protocol: str | None                                        = None
    tables: dict[int, SnapshotTable]                            = Field(default_factory=dict)
    trend: dict[str, list[tuple[datetime, float, int]]]         = Field(default_factory=dict)


class SnapshotDocument(BaseModel):
    elements: dict[str, SnapshotElement] = Field(default_factory=dict)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


class SnapshotDms(DmsClient):
    """
    In-memory DMS serving a static topology and trend snapshot.

    JSON layout::

        {
          "elements": {
            "1/10": {
              "protocol": "CISCO CBR-8 CCAP Platform",
              "tables": {"1200500": {"keys": ["1/20"], "columns": {}}},
              "trend":  {"3001/sg-1": [["2025-01-01T00:00:00Z", 42.0, 5]]}
            }
          }
        }
    """

    def __init__(self, document: SnapshotDocument) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._doc = document

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotDms:
        return cls(SnapshotDocument.model_validate(data))

    @classmethod
    def from_file(cls, path: PathLike) -> SnapshotDms:
        """
        Load a snapshot from a JSON file.

        Raises:
            DmsError: If the file is missing or does not match the snapshot layout.
        """
        p = Path(path)
        try:
            with p.open("r", encoding="utf-8") as f:
                return cls.from_dict(json.load(f))
        except (OSError, ValueError, ValidationError) as exc:
            raise DmsError(f"Unable to load DMS snapshot {p}: {exc}") from exc

    def _element(self, element: str) -> SnapshotElement | None:
        eid = ElementId.parse(element)
        if eid is None:
            return None
        return self._doc.elements.get(eid.to_str())

    @override
    def get_table(self, element: str, table_id: TableId, filters: Sequence[str]) -> TableSnapshot | None:
        node = self._element(element)
        if node is None or table_id not in node.tables:
            return None

        table = node.tables[table_id]
        try:
            parsed = ParsedTableFilter.parse(filters)
        except ValueError as exc:
            raise DmsError(f"Invalid filter for table {table_id} on {element}: {exc}") from exc

        key_column_id = table.key_column_id if table.key_column_id is not None else table_id + 1

        def values(column_id: int) -> list[CellScalar]:
            if column_id == key_column_id and column_id not in table.columns:
                return table.keys
            return table.columns.get(column_id, [None] * len(table.keys))

        rows = list(range(len(table.keys)))
        if parsed.match_column is not None:
            match_values = values(parsed.match_column)
            rows = [r for r in rows if to_cell(match_values[r]).as_str() in parsed.match_values]

        column_ids = parsed.columns if parsed.columns is not None else sorted(table.columns)
        raw_columns = [table.keys] + [values(c) for c in column_ids]

        self.logger.debug(f"GetTable {element} table={table_id} columns={column_ids} rows={len(rows)}")
        return TableSnapshot(columns=[[to_cell(col[r]) for r in rows] for col in raw_columns])

    @override
    def get_element_metadata(self, element: str) -> ElementMetadata | None:
        node = self._element(element)
        if node is None:
            return None
        eid = ElementId.parse(element)
        return ElementMetadata(element_id=ElementIdStr(str(eid)),
                               protocol=ProtocolTag(node.protocol) if node.protocol else None)

    @override
    def get_trend_data(self,
                       element: str,
                       lookups: Sequence[ParameterLookup],
                       start: datetime,
                       end: datetime,
                       interval: AverageTrendInterval = AverageTrendInterval.FIVE_MIN,
                       trending: TrendingType = TrendingType.AVERAGE) -> TrendRecords | None:
        node = self._element(element)
        if node is None:
            return None

        lo, hi = _as_utc(start), _as_utc(end)
        records: TrendRecords = {}
        for lookup in lookups:
            key = lookup.trend_key()
            if key not in node.trend:
                continue
            records[key] = [
                TrendSample(value=value, status=TrendStatus(status), timestamp=ts)
                for ts, value, status in node.trend[key]
                if lo <= _as_utc(ts) < hi
            ]
        return records
