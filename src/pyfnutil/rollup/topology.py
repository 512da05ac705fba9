# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pyfnutil.dms.client import DmsClient
from pyfnutil.dms.filters import FORCE_FULL_TABLE, TableFilter
from pyfnutil.lib.element_id import ElementId
from pyfnutil.lib.types import (
    ElementIdStr,
    FiberNodeId,
    FrequencyMHz,
    ProtocolTag,
    RowKey,
    TableId,
)
from pyfnutil.rollup.models import (
    Collector,
    CollectorWork,
    EntityRow,
    ServiceGroupRef,
    TableLayout,
    TableSnapshot,
)


class TopologyResolver:
    """
    Walks the front-end → backend → collector hierarchy.

    Every lookup fails softly: malformed identifiers, missing tables and
    transport errors resolve to empty results, never exceptions.
    """

    def __init__(self,
                 dms: DmsClient,
                 layout: TableLayout,
                 backend_table_id: TableId,
                 allowed_platforms: Iterable[ProtocolTag | str] = ()) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._dms = dms
        self._layout = layout
        self._backend_table_id = backend_table_id
        self._allowed_platforms = frozenset(str(p) for p in allowed_platforms)

    @property
    def layout(self) -> TableLayout:
        return self._layout

    # ── generic table access ────────────────────────────────────────────────

    def snapshot(self, element: str, table_id: TableId, filters: Sequence[str]) -> TableSnapshot:
        """Fetch a table snapshot; any failure yields an empty snapshot."""
        if ElementId.parse(element) is None:
            self.logger.debug(f"Skipping table {table_id}: malformed element {element!r}")
            return TableSnapshot()
        try:
            snap = self._dms.get_table(element, table_id, list(filters))
        except Exception as exc:
            self.logger.error(f"GetTable failed for {element} table={table_id}: {exc}")
            return TableSnapshot()
        return snap if snap is not None else TableSnapshot()

    def column_snapshot(self,
                        element: str,
                        table_id: TableId,
                        offsets: Sequence[int],
                        match_offset: int | None = None,
                        match_values: Iterable[str] | None = None) -> TableSnapshot:
        """
        Fetch ``table_id`` restricted to ``table_id + offset`` columns.

        When ``match_values`` is given, rows are filtered to those whose
        ``table_id + match_offset`` column equals one of the values.
        """
        filters = [TableFilter.columns(table_id + o for o in offsets)]
        if match_values is not None:
            values = list(match_values)
            if not values:
                return TableSnapshot()
            filters.append(TableFilter.full_filter(table_id + (match_offset or 1), values))
        return self.snapshot(element, table_id, filters)

    def child_elements(self, root: str, table_id: TableId) -> list[ElementIdStr]:
        """Ordered, de-duplicated element ids found in the first column of ``table_id``."""
        snap = self.snapshot(root, table_id, [FORCE_FULL_TABLE])
        seen: dict[str, None] = {}
        for value in snap.column_str(0):
            if value:
                seen.setdefault(value, None)
        return [ElementIdStr(v) for v in seen]

    # ── platform ────────────────────────────────────────────────────────────

    def protocol(self, element: str) -> ProtocolTag | None:
        if ElementId.parse(element) is None:
            return None
        try:
            meta = self._dms.get_element_metadata(element)
        except Exception as exc:
            self.logger.error(f"Metadata lookup failed for {element}: {exc}")
            return None
        return meta.protocol if meta is not None else None

    def is_supported_platform(self, protocol: ProtocolTag | str | None) -> bool:
        """An empty allow-list admits every platform."""
        if not self._allowed_platforms:
            return True
        return protocol is not None and str(protocol) in self._allowed_platforms

    # ── hierarchy walk ──────────────────────────────────────────────────────

    def resolve_collectors(self, root: str, backend_entity_table_id: TableId) -> list[CollectorWork]:
        """
        Resolve every participating collector and its backlog of backend rows.

        Collectors keep first-seen order; a collector referenced by several
        backends gets one entry with the union of their rows.
        """
        if ElementId.parse(root) is None:
            self.logger.info(f"Root element {root!r} is malformed; nothing to resolve")
            return []

        layout = self._layout
        grouped: dict[str, dict[str, ServiceGroupRef]] = {}
        for backend in self.child_elements(root, self._backend_table_id):
            snap = self.column_snapshot(backend, backend_entity_table_id,
                                        [layout.backend_fiber_node_offset,
                                         layout.backend_name_offset,
                                         layout.backend_collector_offset])
            if snap.is_empty() or snap.column_count() < 4:
                continue

            keys = snap.column_str(0)
            fiber_nodes = snap.column_str(1)
            names = snap.column_str(2)
            collectors = snap.column_str(3)
            for key, fn_id, name, collector in zip(keys, fiber_nodes, names, collectors):
                if ElementId.parse(collector) is None:
                    continue
                refs = grouped.setdefault(collector, {})
                refs.setdefault(key, ServiceGroupRef(key=RowKey(key),
                                                     name=name,
                                                     fiber_node_id=FiberNodeId(fn_id or key)))

        work: list[CollectorWork] = []
        for collector_id, refs in grouped.items():
            protocol = self.protocol(collector_id)
            if not self.is_supported_platform(protocol):
                self.logger.debug(f"Collector {collector_id} skipped: platform {protocol!r} not supported")
                continue
            work.append(CollectorWork(collector=Collector(element_id=ElementIdStr(collector_id), protocol=protocol),
                                      backlog=list(refs.values())))

        self.logger.info(f"Resolved {len(work)} collector(s) under {root}")
        return work

    # ── collector entity tables ─────────────────────────────────────────────

    def service_group_rows(self,
                           collector: str,
                           table_id: TableId,
                           keys: Iterable[str] | None = None) -> list[EntityRow]:
        """Service-group rows (one per fiber node) of a collector entity table."""
        snap = self.column_snapshot(collector, table_id,
                                    [self._layout.service_group_name_offset],
                                    match_offset=1,
                                    match_values=keys)
        if snap.is_empty():
            return []
        return [
            EntityRow(key=RowKey(key), fiber_node_id=FiberNodeId(key), fiber_node_name=name)
            for key, name in zip(snap.column_str(0), snap.column_str(1))
        ]

    def channel_rows(self,
                     collector: str,
                     table_id: TableId,
                     fiber_node_ids: Iterable[str] | None = None) -> list[EntityRow]:
        """Upstream channel rows, each mapped to a fiber node and a frequency."""
        layout = self._layout
        snap = self.column_snapshot(collector, table_id,
                                    [layout.channel_name_offset,
                                     layout.channel_fiber_node_offset,
                                     layout.channel_fiber_node_name_offset,
                                     layout.channel_frequency_offset],
                                    match_offset=layout.channel_fiber_node_offset,
                                    match_values=fiber_node_ids)
        if snap.is_empty():
            return []

        rows: list[EntityRow] = []
        for key, channel, fn_id, fn_name, freq in zip(snap.column_str(0),
                                                      snap.column_str(1),
                                                      snap.column_str(2),
                                                      snap.column_str(3),
                                                      snap.column_float(4)):
            if not fn_id:
                continue
            rows.append(EntityRow(key=RowKey(key),
                                  fiber_node_id=FiberNodeId(fn_id),
                                  fiber_node_name=fn_name,
                                  channel_name=channel,
                                  frequency_mhz=FrequencyMHz(freq) if freq is not None else None))
        return rows

    def ofdma_rows(self,
                   collector: str,
                   table_id: TableId,
                   fiber_node_ids: Iterable[str] | None = None) -> list[EntityRow]:
        """OFDMA channel rows mapped to their fiber node."""
        offset = self._layout.ofdma_fiber_node_offset
        snap = self.column_snapshot(collector, table_id, [offset],
                                    match_offset=offset,
                                    match_values=fiber_node_ids)
        if snap.is_empty():
            return []
        return [
            EntityRow(key=RowKey(key), fiber_node_id=FiberNodeId(fn_id))
            for key, fn_id in zip(snap.column_str(0), snap.column_str(1))
            if fn_id
        ]
