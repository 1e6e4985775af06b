"""Filesystem defaults for gem-download-counts."""

from __future__ import annotations

import os
from pathlib import Path

DATABASE_PATH_ENV_VAR = "GEM_DOWNLOADS_DATABASE"


def get_default_database_path() -> Path:
    """Return the DuckDB path from the environment, falling back to the XDG data directory."""
    override = os.environ.get(DATABASE_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        base_data_dir = Path(xdg_data_home).expanduser()
    else:
        base_data_dir = Path("~/.local/share").expanduser()
    return base_data_dir / "gem-download-counts" / "downloads.duckdb"
