# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from pyfnutil.lib.types import ColumnId

FORCE_FULL_TABLE = "forceFullTable=true"

_FULL_FILTER_RE = re.compile(r"^fullFilter=\((.*)\)$", re.IGNORECASE)
_PREDICATE_RE = re.compile(r"^\s*(\d+)\s*==\s*(.*?)\s*$")


class TableFilter:
    """Builds ``GetTable`` filter strings."""

    @staticmethod
    def columns(column_ids: Iterable[ColumnId | int]) -> str:
        ids = ",".join(str(c) for c in column_ids)
        return f"{FORCE_FULL_TABLE};columns={ids}"

    @staticmethod
    def full_filter(column_id: ColumnId | int, values: Iterable[str]) -> str:
        """
        Boolean-OR of equality predicates on one column.

        Example:
            TableFilter.full_filter(1001, ["a", "b"]) -> "fullFilter=(1001==a OR 1001==b)"
        """
        predicates = " OR ".join(f"{column_id}=={v}" for v in values)
        return f"fullFilter=({predicates})"


class ParsedTableFilter(BaseModel):
    """Filter keywords recognized by a table snapshot source."""
    force_full_table: bool                      = False
    columns: list[int] | None                   = None
    match_column: int | None                    = None
    match_values: set[str]                      = Field(default_factory=set)

    @classmethod
    def parse(cls, filters: Sequence[str]) -> ParsedTableFilter:
        """
        Parse filter strings; unrecognized keywords are ignored.

        Each entry may hold several ``;``-separated keywords. A ``fullFilter``
        expression may only reference one column.
        """
        parsed = cls()
        for entry in filters:
            for token in (t.strip() for t in entry.split(";")):
                if not token:
                    continue
                lowered = token.lower()
                if lowered == FORCE_FULL_TABLE.lower():
                    parsed.force_full_table = True
                elif lowered.startswith("columns="):
                    parsed.columns = [int(c) for c in token.split("=", 1)[1].split(",") if c.strip()]
                else:
                    m = _FULL_FILTER_RE.match(token)
                    if m:
                        parsed._parse_full_filter(m.group(1))
        return parsed

    def _parse_full_filter(self, expression: str) -> None:
        for predicate in re.split(r"\s+OR\s+", expression, flags=re.IGNORECASE):
            m = _PREDICATE_RE.match(predicate)
            if not m:
                raise ValueError(f"Unsupported fullFilter predicate: {predicate!r}")
            column = int(m.group(1))
            if self.match_column is not None and self.match_column != column:
                raise ValueError("fullFilter predicates must reference a single column")
            self.match_column = column
            self.match_values.add(m.group(2))
