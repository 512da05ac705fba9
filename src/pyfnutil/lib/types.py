# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import NewType, TypeAlias

import numpy as np
from numpy.typing import NDArray

QueryId         = NewType("QueryId", str)


# Enum String Type
class StringEnum(str, Enum):
    """Py3.10-compatible StrEnum shim."""
    pass

# ────────────────────────────────────────────────────────────────────────────────
# Core numerics
# ────────────────────────────────────────────────────────────────────────────────
NDArrayF64: TypeAlias   = NDArray[np.float64]

# ────────────────────────────────────────────────────────────────────────────────
# Paths / filesystem
# ────────────────────────────────────────────────────────────────────────────────
PathLike    = str | Path
FileNameStr = NewType("FileNameStr", str)

# ────────────────────────────────────────────────────────────────────────────────
# DataMiner-style identifiers
# ────────────────────────────────────────────────────────────────────────────────
ElementIdStr    = NewType("ElementIdStr", str)      # "<dmaId>/<elementId>"
TableId         = NewType("TableId", int)
ParameterId     = NewType("ParameterId", int)
ColumnId        = NewType("ColumnId", int)
RowKey          = NewType("RowKey", str)
FiberNodeId     = NewType("FiberNodeId", str)
ProtocolTag     = NewType("ProtocolTag", str)

# Raw cell payload as it comes off a table snapshot
CellScalar: TypeAlias   = str | int | float | bool | None

# ────────────────────────────────────────────────────────────────────────────────
# Unit-tagged NewTypes (scalars only; runtime = underlying type)
# ────────────────────────────────────────────────────────────────────────────────
FrequencyMHz    = NewType("FrequencyMHz", float)
UtilizationPct  = NewType("UtilizationPct", float)
TrendStatus     = NewType("TrendStatus", int)
