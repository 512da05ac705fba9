# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import logging
from typing import cast

from pyfnutil.lib.types import ElementIdStr


class ElementId:
    """
    Composite DataMiner element identifier ``<dmaId>/<elementId>``.

    Construction is strict (raises ``ValueError``); use :meth:`parse` when the
    caller wants malformed input to mean "nothing to resolve".
    """

    _SEPARATOR = "/"

    def __init__(self, dma_id: int, element_id: int) -> None:
        if dma_id < 0 or element_id < 0:
            raise ValueError(f"Invalid element identifier: {dma_id}/{element_id}")
        self._dma_id = dma_id
        self._element_id = element_id

    @classmethod
    def parse(cls, value: str | None) -> ElementId | None:
        """
        Parse a ``<int>/<int>`` identifier.

        Returns:
            ElementId | None: The parsed identifier, or None when the value is
            empty or not of the expected form.
        """
        if not value:
            return None

        parts = str(value).strip().split(cls._SEPARATOR)
        if len(parts) < 2:
            return None

        try:
            return cls(int(parts[0]), int(parts[1]))
        except ValueError:
            logging.getLogger(cls.__name__).debug(f"Malformed element identifier: {value!r}")
            return None

    @property
    def dma_id(self) -> int:
        return self._dma_id

    @property
    def element_id(self) -> int:
        return self._element_id

    def to_str(self) -> ElementIdStr:
        return cast(ElementIdStr, f"{self._dma_id}{self._SEPARATOR}{self._element_id}")

    def __str__(self) -> str:
        return self.to_str()

    def __repr__(self) -> str:
        return f"ElementId({self._dma_id}, {self._element_id})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ElementId):
            return NotImplemented
        return (self._dma_id, self._element_id) == (other._dma_id, other._element_id)

    def __hash__(self) -> int:
        return hash((self._dma_id, self._element_id))
