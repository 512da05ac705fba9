# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

"""
Router for fiber-node utilization rollups.

Endpoints:
- POST /utilization/query:             Open a paginated utilization query
- POST /utilization/query/{id}/next:   Fetch the next page of an open query
- POST /utilization/rollup:            Run a query to completion
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from http import HTTPStatus

from fastapi import APIRouter, HTTPException

from pyfnutil.api.routes.utilization.schemas import (
    PageResponse,
    QueryOpenResponse,
    RollupQueryRequest,
    RollupResponse,
)
from pyfnutil.api.routes.utilization.service import UtilizationQueryService, get_dms_client
from pyfnutil.lib.fastapi_constants import FAST_API_RESPONSE
from pyfnutil.lib.types import QueryId


class UtilizationRouter:
    """
    FastAPI router for fiber-node utilization queries.
    """
    def __init__(
        self,
        prefix: str = "/utilization",
        tags: list[str | Enum] | None = None) -> None:
        if tags is None:
            tags = ["Fiber Node Utilization"]
        self.router = APIRouter(prefix=prefix, tags=tags)
        self.logger = logging.getLogger(__name__)
        self._register_routes()

    def _service(self) -> UtilizationQueryService:
        try:
            return UtilizationQueryService(get_dms_client())
        except Exception as exc:
            self.logger.error(f"DMS client unavailable: {exc}")
            raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                                detail="DMS client unavailable") from exc

    def _register_routes(self) -> None:
        @self.router.post("/query",
                          response_model=QueryOpenResponse,
                          summary="Open A Fiber Node Utilization Query",
                          description="Resolves the collectors under the front-end element and opens a pagination session.",
                          responses=FAST_API_RESPONSE,)
        async def open_query(request: RollupQueryRequest) -> QueryOpenResponse:
            """
            **Open A Fiber Node Utilization Query**

            Returns a `query_id` and the output columns selected by `metric`.
            Call `/utilization/query/{query_id}/next` until `has_next_page` is false.
            """
            self.logger.info(f"Opening utilization query for {request.root_element} metric={request.metric.value}")
            service = self._service()
            return await asyncio.to_thread(service.open, request)

        @self.router.post("/query/{query_id}/next",
                          response_model=PageResponse,
                          summary="Fetch The Next Utilization Page",
                          description="Processes one collector (or one backlog slice) and returns its rows.",
                          responses=FAST_API_RESPONSE,)
        async def next_page(query_id: str) -> PageResponse:
            service = self._service()
            page = await asyncio.to_thread(service.next_page, QueryId(query_id))
            if page is None:
                raise HTTPException(status_code=HTTPStatus.NOT_FOUND,
                                    detail=f"Unknown or exhausted query id: {query_id}")
            return page

        @self.router.post("/rollup",
                          response_model=RollupResponse,
                          summary="Run A Fiber Node Utilization Query",
                          description="Drains every page of a query and returns all rows at once.",
                          responses=FAST_API_RESPONSE,)
        async def rollup(request: RollupQueryRequest) -> RollupResponse:
            self.logger.info(f"Running utilization rollup for {request.root_element} metric={request.metric.value}")
            service = self._service()
            return await asyncio.to_thread(service.rollup, request)


router = UtilizationRouter().router
