"""Configuration — Pydantic models for ptyrun settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import dotenv_values
from pydantic import BaseModel, Field

from ptyrun.model.terminal import WindowSize


class PtyrunConfig(BaseModel):
    """Session tuning knobs. None of them change the child's environment."""

    read_chunk_size: int = Field(
        default=4096, gt=0, description="Bytes requested per read by stdout.chunks()"
    )
    reap_grace: float = Field(
        default=0.5,
        ge=0,
        description=(
            "Seconds wait_for() waits for a concurrent reaper to record the "
            "outcome before settling on UNKNOWN"
        ),
    )
    window: WindowSize | None = Field(
        default=None,
        description="Initial window size when launch() is not given one",
    )

    @classmethod
    def load(
        cls, config_path: str | None = None, env_file: str | None = None
    ) -> PtyrunConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > .env file > config file > defaults.

        The .env file (``env_file``, or the nearest one python-dotenv finds)
        is only read here. It is never copied into ``os.environ``, so
        children launched with an inherited environment see exactly the
        host's variables.

        Env vars:
            PTYRUN_READ_CHUNK_SIZE  - Override read chunk size
            PTYRUN_REAP_GRACE       - Override reap grace period (seconds)
            PTYRUN_ROWS             - Initial window rows (needs PTYRUN_COLS)
            PTYRUN_COLS             - Initial window columns (needs PTYRUN_ROWS)
        """
        env = {**dotenv_values(env_file), **os.environ}

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        env_chunk = env.get("PTYRUN_READ_CHUNK_SIZE")
        if env_chunk:
            config_data["read_chunk_size"] = int(env_chunk)

        env_grace = env.get("PTYRUN_REAP_GRACE")
        if env_grace:
            config_data["reap_grace"] = float(env_grace)

        env_rows = env.get("PTYRUN_ROWS")
        env_cols = env.get("PTYRUN_COLS")
        if env_rows and env_cols:
            window = dict(config_data.get("window") or {})
            window["rows"] = int(env_rows)
            window["cols"] = int(env_cols)
            config_data["window"] = window

        return cls.model_validate(config_data)


_config: PtyrunConfig | None = None


def get_config() -> PtyrunConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = PtyrunConfig.load()
    return _config
