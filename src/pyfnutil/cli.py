#!/usr/bin/env python3
# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from typing import Any

import uvicorn

from pyfnutil import __version__ as PYFNUTIL_VERSION
from pyfnutil.config.system_config_settings import SNAPSHOT_ENV_VAR

APP_IMPORT_PATH = "pyfnutil.api.main:app"
DEFAULT_BIND = ("127.0.0.1", 8000)
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyfnutil",
        description="Serve fiber-node utilization rollups over HTTP.",
    )
    parser.add_argument("-v", "--version", action="version", version=PYFNUTIL_VERSION)
    parser.add_argument("--host", default=DEFAULT_BIND[0], help="Bind address (default: %(default)s)")
    parser.add_argument("--port", default=DEFAULT_BIND[1], type=int, help="Bind port (default: %(default)s)")
    parser.add_argument("--log-level", default="info", choices=LOG_LEVELS,
                        help="uvicorn log level (default: %(default)s)")
    parser.add_argument("--snapshot", metavar="PATH",
                        help="DMS snapshot JSON to serve instead of Dms.snapshot_path")
    parser.add_argument("--reload", action="store_true", help="Restart on source changes (development).")
    return parser


def uvicorn_options(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed arguments into ``uvicorn.run`` keyword arguments."""
    options: dict[str, Any] = {
        "app": APP_IMPORT_PATH,
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
        "timeout_keep_alive": 120,
    }
    if args.reload:
        options["reload"] = True
        options["reload_dirs"] = ["src"]
    return options


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    # the app process reads the snapshot location from the environment
    if args.snapshot:
        os.environ[SNAPSHOT_ENV_VAR] = os.path.abspath(args.snapshot)

    print(f"pyfnutil {PYFNUTIL_VERSION} listening on http://{args.host}:{args.port}")
    uvicorn.run(**uvicorn_options(args))


if __name__ == "__main__":
    main()
