# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from pyfnutil.rollup.models import NO_DATA

NOT_AVAILABLE = "N/A"
PERCENT_UNIT = "%"


def format_utilization(value: float, unit: str = PERCENT_UNIT, precision: int = 2) -> str:
    """
    Render a utilization value for display.

    Example:
        format_utilization(30.0)   -> "30.00 %"
        format_utilization(-1)     -> "N/A"
    """
    if value == NO_DATA:
        return NOT_AVAILABLE
    return f"{round(value, precision):.{precision}f} {unit}"
