# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from typing import Any

FAST_API_RESPONSE: dict[int | str, dict[str, Any]] = {
    200: {
        "description": "JSON payload",
        "content": {
            "application/json": {},
        },
    },
    404: {
        "description": "Resource not found (for example, an unknown or exhausted query id)",
    },
    422: {
        "description": "Request body validation error (Pydantic/FastAPI validation failure)",
    },
    500: {
        "description": "Server error",
    },
}
