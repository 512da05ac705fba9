# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

"""
Request and response models for the fiber-node utilization endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from pyfnutil.lib.types import QueryId
from pyfnutil.rollup.models import GridRow, OutputColumn, RollupQuery


class RollupQueryRequest(RollupQuery):
    """
    Request model for a utilization query.

    Inherits every query argument from RollupQuery.
    """


class QueryOpenResponse(BaseModel):
    query_id: QueryId               = Field(..., description="Pagination session identifier")
    columns: list[OutputColumn]     = Field(..., description="Output columns selected by the metric")
    has_next_page: bool             = Field(..., description="False when the query resolved no work")


class PageResponse(BaseModel):
    query_id: QueryId               = Field(..., description="Pagination session identifier")
    page: int                       = Field(..., ge=1, description="1-based page number")
    rows: list[GridRow]             = Field(default_factory=list, description="Rows of this page")
    has_next_page: bool             = Field(..., description="Keep calling next while True")


class RollupResponse(BaseModel):
    columns: list[OutputColumn]     = Field(..., description="Output columns selected by the metric")
    rows: list[GridRow]             = Field(default_factory=list, description="All rows of the query")
