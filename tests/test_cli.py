# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2025 Maurice Garcia

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest

from pyfnutil import cli
from pyfnutil.config.system_config_settings import SNAPSHOT_ENV_VAR


def test_defaults_map_to_uvicorn_options() -> None:
    opts = cli.uvicorn_options(cli.build_parser().parse_args([]))

    assert opts["app"] == "pyfnutil.api.main:app"
    assert (opts["host"], opts["port"], opts["log_level"]) == ("127.0.0.1", 8000, "info")
    assert "reload" not in opts


def test_reload_watches_src() -> None:
    opts = cli.uvicorn_options(cli.build_parser().parse_args(["--reload", "--port", "9000"]))

    assert opts["reload"] is True
    assert opts["reload_dirs"] == ["src"]
    assert opts["port"] == 9000


def test_main_exports_snapshot_and_runs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda **kw: seen.update(kw))
    monkeypatch.delenv(SNAPSHOT_ENV_VAR, raising=False)
    snapshot = tmp_path / "dms.json"

    cli.main(["--snapshot", str(snapshot), "--log-level", "debug"])

    assert os.environ[SNAPSHOT_ENV_VAR] == str(snapshot)
    assert seen["log_level"] == "debug"
    monkeypatch.delenv(SNAPSHOT_ENV_VAR)


def test_rejects_unknown_log_level() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--log-level", "loud"])
