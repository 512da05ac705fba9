# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from pyfnutil.api.routes.utilization.router import router as utilization_router
from pyfnutil.startup.startup import StartUp
from pyfnutil.version import __version__

API_DESCRIPTION = """
**Fiber Node Utilization Rollups For DOCSIS Collectors**

pyfnutil walks a front-end element's backend and collector (CCAP) hierarchy,
pulls windowed utilization trend data in bounded batches, and rolls it up to
one row per fiber node:

- Peak utilization over the requested range (max or top-N average)
- Low split / high split utilization from hourly averages
- Low split plus OFDMA utilization

Results are paginated per collector or per backlog slice.
"""


def create_app() -> FastAPI:
    application = FastAPI(
        title="pyfnutil REST API",
        version=__version__,
        description=API_DESCRIPTION,
    )

    # large rollups compress well; small health replies are left alone
    application.add_middleware(GZipMiddleware, minimum_size=100_000)
    application.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @application.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    application.include_router(utilization_router)
    return application


StartUp.initialize()
app = create_app()
