# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from typing import cast

from pyfnutil.api.routes.utilization.schemas import (
    PageResponse,
    QueryOpenResponse,
    RollupResponse,
)
from pyfnutil.config.system_config_settings import SystemConfigSettings
from pyfnutil.dms.client import DmsClient
from pyfnutil.dms.snapshot import SnapshotDms
from pyfnutil.lib.types import QueryId
from pyfnutil.rollup.cursor import CursorState, PageCursor
from pyfnutil.rollup.engine import RollupSettings, UtilizationEngine
from pyfnutil.rollup.models import RollupQuery

logger = logging.getLogger(__name__)

_dms_client: DmsClient | None = None


def get_dms_client() -> DmsClient:
    """Return the process-wide DMS client, loading the configured snapshot on first use."""
    global _dms_client
    if _dms_client is None:
        path = SystemConfigSettings.dms_snapshot_path()
        _dms_client = SnapshotDms.from_file(path)
        logger.info(f"DMS snapshot loaded from {path}")
    return _dms_client


def set_dms_client(client: DmsClient | None) -> None:
    """Install (or reset with None) the process-wide DMS client."""
    global _dms_client
    _dms_client = client


class QuerySessionStore:
    """
    In-memory pagination sessions keyed by query id.

    A session lives from open until its last page; ``claim`` removes it so a
    page is never produced twice from the same state. Sessions not touched
    for ``ttl_seconds`` are dropped on the next ``put`` or ``claim``; a
    ``None`` ttl reads ``Api.session_ttl_seconds`` from system.json.
    """

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._states: dict[QueryId, tuple[float, CursorState]] = {}

    @property
    def ttl_seconds(self) -> float:
        if self._ttl_seconds is None:
            return SystemConfigSettings.session_ttl_seconds()
        return self._ttl_seconds

    def _purge_expired(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        expired = [qid for qid, (touched, _) in self._states.items() if touched <= cutoff]
        for qid in expired:
            del self._states[qid]
        if expired:
            self.logger.info(f"Dropped {len(expired)} abandoned utilization query session(s)")

    def put(self, query_id: QueryId, state: CursorState) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._states[query_id] = (now, state)

    def claim(self, query_id: QueryId) -> CursorState | None:
        with self._lock:
            self._purge_expired(self._clock())
            entry = self._states.pop(query_id, None)
        return entry[1] if entry is not None else None

    def __contains__(self, query_id: object) -> bool:
        with self._lock:
            return query_id in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


class UtilizationQueryService:
    """
    Drives PageCursor on behalf of the REST surface.

    All methods block on remote calls; async callers should run them in a
    worker thread.
    """

    sessions = QuerySessionStore()

    def __init__(self, dms: DmsClient, settings: RollupSettings | None = None) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self.cursor = PageCursor(UtilizationEngine(dms, settings or RollupSettings.from_system_config()))

    @staticmethod
    def _new_query_id() -> QueryId:
        return cast(QueryId, uuid.uuid4().hex[:16])

    def open(self, query: RollupQuery) -> QueryOpenResponse:
        state = self.cursor.open(query)
        query_id = self._new_query_id()
        more = state.has_work()
        if more:
            self.sessions.put(query_id, state)
        self.logger.info(f"Opened utilization query {query_id} for {query.root_element} "
                         f"(metric={query.metric.value}, collectors={len(state.remaining)})")
        return QueryOpenResponse(query_id=query_id,
                                 columns=self.cursor.columns(query),
                                 has_next_page=more)

    def next_page(self, query_id: QueryId) -> PageResponse | None:
        """Return the next page, or None when the query id is unknown or exhausted."""
        state = self.sessions.claim(query_id)
        if state is None:
            return None

        page, state = self.cursor.next_page(state)
        if page.has_next_page:
            self.sessions.put(query_id, state)
        return PageResponse(query_id=query_id,
                            page=state.pages,
                            rows=page.rows,
                            has_next_page=page.has_next_page)

    def rollup(self, query: RollupQuery) -> RollupResponse:
        return RollupResponse(columns=self.cursor.columns(query),
                              rows=self.cursor.collect_rows(query))
