# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime

from pydantic import BaseModel, Field

from pyfnutil.rollup.columns import output_columns, to_rows
from pyfnutil.rollup.engine import UtilizationEngine
from pyfnutil.rollup.models import (
    CollectorWork,
    CursorStatus,
    GridRow,
    OutputColumn,
    Page,
    PagingMode,
    RollupQuery,
    TimeWindow,
)
from pyfnutil.rollup.rollup import UtilizationRollup


class CursorState(BaseModel):
    """
    Pagination state of one query invocation.

    ``remaining`` holds collectors not yet started; ``current`` is the
    collector whose backlog is being drained in backlog paging mode.
    """
    query: RollupQuery
    window: TimeWindow | None           = None
    remaining: list[CollectorWork]      = Field(default_factory=list)
    current: CollectorWork | None       = None
    emitted_keys: set[str]              = Field(default_factory=set)
    pages: int                          = 0
    status: CursorStatus                = CursorStatus.READY

    def has_work(self) -> bool:
        if self.status is CursorStatus.EXHAUSTED:
            return False
        if self.current is not None and self.current.backlog:
            return True
        return bool(self.remaining)


class PageCursor:
    """
    Pull-based pager over the collectors of one query.

    The cursor itself is stateless: :meth:`open` builds a :class:`CursorState`
    and :meth:`next_page` consumes one unit of work from it and returns the
    advanced state. One unit is a whole collector (``PagingMode.COLLECTOR``)
    or up to ``backlog_slice_size`` backend rows of the current collector
    (``PagingMode.BACKLOG``).

    Failures never propagate: a page that fails is emitted with the rows
    produced before the failure and pagination stops.
    """

    def __init__(self, engine: UtilizationEngine) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self.engine = engine

    def columns(self, query: RollupQuery) -> list[OutputColumn]:
        return output_columns(query.metric)

    def open(self, query: RollupQuery, now: datetime | None = None) -> CursorState:
        """Resolve the query range and its collectors."""
        try:
            window = query.resolve_range(self.engine.settings.default_range_hours, now)
            work = self.engine.resolver.resolve_collectors(query.root_element, query.backend_entity_table_id)
        except Exception:
            self.logger.exception(f"Unable to open utilization query for {query.root_element!r}")
            return CursorState(query=query, status=CursorStatus.EXHAUSTED)

        state = CursorState(query=query, window=window, remaining=work)
        if not state.has_work():
            state.status = CursorStatus.EXHAUSTED
        return state

    def next_page(self, state: CursorState) -> tuple[Page, CursorState]:
        """
        Produce the next page.

        Returns:
            tuple[Page, CursorState]: The page and the advanced state. When the
            state is exhausted the page is empty and ``has_next_page`` is False.
        """
        if not state.has_work() or state.window is None:
            return Page(rows=[], has_next_page=False), state.model_copy(update={"status": CursorStatus.EXHAUSTED})

        query = state.query
        remaining = list(state.remaining)
        current = state.current
        rollup = UtilizationRollup()

        try:
            if query.paging is PagingMode.BACKLOG:
                if current is None or not current.backlog:
                    current = remaining.pop(0)
                size = self.engine.settings.backlog_slice_size
                refs, rest = current.backlog[:size], current.backlog[size:]
                current = current.model_copy(update={"backlog": rest})
                self.engine.process_slice(query, state.window, current.collector, refs, rollup, filtered=True)
            else:
                work = remaining.pop(0)
                self.engine.process_slice(query, state.window, work.collector, work.backlog, rollup)

        except Exception:
            self.logger.exception(f"Page {state.pages + 1} of {query.root_element!r} failed; stopping pagination")
            rows = self._fresh_rows(rollup, query, state.emitted_keys)
            return Page(rows=rows, has_next_page=False), state.model_copy(update={
                "remaining": [],
                "current": None,
                "emitted_keys": state.emitted_keys | {r.key for r in rows},
                "pages": state.pages + 1,
                "status": CursorStatus.EXHAUSTED,
            })

        rows = self._fresh_rows(rollup, query, state.emitted_keys)
        next_state = state.model_copy(update={
            "remaining": remaining,
            "current": current,
            "emitted_keys": state.emitted_keys | {r.key for r in rows},
            "pages": state.pages + 1,
        })
        more = next_state.has_work()
        if not more:
            next_state.status = CursorStatus.EXHAUSTED

        self.logger.debug(f"Page {next_state.pages}: {len(rows)} row(s), more={more}")
        return Page(rows=rows, has_next_page=more), next_state

    def _fresh_rows(self, rollup: UtilizationRollup, query: RollupQuery, emitted: set[str]) -> list[GridRow]:
        records = [r for r in rollup.records() if r.key not in emitted]
        return to_rows(records, query.metric)

    def iter_pages(self, query: RollupQuery, now: datetime | None = None) -> Iterator[Page]:
        """Yield pages until the continuation flag turns False."""
        state = self.open(query, now)
        while True:
            page, state = self.next_page(state)
            yield page
            if not page.has_next_page:
                return

    def collect_rows(self, query: RollupQuery, now: datetime | None = None) -> list[GridRow]:
        rows: list[GridRow] = []
        for page in self.iter_pages(query, now):
            rows.extend(page.rows)
        return rows
