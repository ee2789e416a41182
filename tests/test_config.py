"""Tests for ptyrun.config (PtyrunConfig loading)."""

from __future__ import annotations

import json
import os

import pytest
from pydantic import ValidationError

from ptyrun.config import PtyrunConfig
from ptyrun.model import WindowSize

_ENV_VARS = ("PTYRUN_READ_CHUNK_SIZE", "PTYRUN_REAP_GRACE", "PTYRUN_ROWS", "PTYRUN_COLS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self) -> None:
        config = PtyrunConfig()
        assert config.read_chunk_size == 4096
        assert config.reap_grace == 0.5
        assert config.window is None

    def test_chunk_size_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PtyrunConfig(read_chunk_size=0)

    def test_reap_grace_not_negative(self) -> None:
        with pytest.raises(ValidationError):
            PtyrunConfig(reap_grace=-1)


class TestLoad:
    def test_load_without_sources(self) -> None:
        assert PtyrunConfig.load() == PtyrunConfig()

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PTYRUN_READ_CHUNK_SIZE", "1024")
        monkeypatch.setenv("PTYRUN_REAP_GRACE", "0.25")
        config = PtyrunConfig.load()
        assert config.read_chunk_size == 1024
        assert config.reap_grace == 0.25

    def test_env_window(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PTYRUN_ROWS", "40")
        monkeypatch.setenv("PTYRUN_COLS", "132")
        config = PtyrunConfig.load()
        assert config.window == WindowSize(rows=40, cols=132)

    def test_env_window_needs_both(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PTYRUN_ROWS", "40")
        assert PtyrunConfig.load().window is None

    def test_file(self, tmp_path) -> None:
        path = tmp_path / "ptyrun.json"
        path.write_text(
            json.dumps({"read_chunk_size": 512, "window": {"rows": 24, "cols": 80}})
        )
        config = PtyrunConfig.load(str(path))
        assert config.read_chunk_size == 512
        assert config.window == WindowSize(rows=24, cols=80)

    def test_env_beats_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "ptyrun.json"
        path.write_text(json.dumps({"read_chunk_size": 512}))
        monkeypatch.setenv("PTYRUN_READ_CHUNK_SIZE", "2048")
        assert PtyrunConfig.load(str(path)).read_chunk_size == 2048

    def test_missing_file_ignored(self, tmp_path) -> None:
        config = PtyrunConfig.load(str(tmp_path / "absent.json"))
        assert config == PtyrunConfig()


class TestEnvFile:
    def test_values_applied(self, tmp_path) -> None:
        path = tmp_path / ".env"
        path.write_text("PTYRUN_READ_CHUNK_SIZE=256\nPTYRUN_ROWS=50\nPTYRUN_COLS=160\n")
        config = PtyrunConfig.load(env_file=str(path))
        assert config.read_chunk_size == 256
        assert config.window == WindowSize(rows=50, cols=160)

    def test_env_beats_env_file(self, tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / ".env"
        path.write_text("PTYRUN_REAP_GRACE=2.0\n")
        monkeypatch.setenv("PTYRUN_REAP_GRACE", "0.1")
        assert PtyrunConfig.load(env_file=str(path)).reap_grace == 0.1

    def test_env_file_beats_config_file(self, tmp_path) -> None:
        config_path = tmp_path / "ptyrun.json"
        config_path.write_text(json.dumps({"read_chunk_size": 512}))
        env_path = tmp_path / ".env"
        env_path.write_text("PTYRUN_READ_CHUNK_SIZE=128\n")
        config = PtyrunConfig.load(str(config_path), env_file=str(env_path))
        assert config.read_chunk_size == 128

    def test_host_environment_untouched(
        self, tmp_path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("PTYRUN_UNRELATED_SECRET", raising=False)
        path = tmp_path / ".env"
        path.write_text("PTYRUN_UNRELATED_SECRET=leaked\nPTYRUN_READ_CHUNK_SIZE=64\n")
        PtyrunConfig.load(env_file=str(path))
        assert "PTYRUN_UNRELATED_SECRET" not in os.environ
        assert "PTYRUN_READ_CHUNK_SIZE" not in os.environ
