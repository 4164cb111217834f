"""Environment-driven runtime configuration."""

from __future__ import annotations

import json

import pytest

from smart_roster.config import get_supabase_config, http_config, load_heuristics, runtime_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "SMART_ROSTER_DATA_DIR",
        "SMART_ROSTER_BACKEND",
        "SMART_ROSTER_HEURISTICS_FILE",
        "SMART_ROSTER_EARLY_ROLES",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "ANTHROPIC_MODEL",
        "HOST",
        "PORT",
        "SMART_ROSTER_API_KEY",
        "MCP_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)


class TestRuntimeConfig:
    def test_defaults(self):
        cfg = runtime_config()
        assert cfg.backend == "file"
        assert cfg.data_dir.name == "roster_data"
        assert cfg.heuristics_file is None
        assert cfg.early_roles is None

    def test_bad_backend(self, monkeypatch):
        monkeypatch.setenv("SMART_ROSTER_BACKEND", "mysql")
        with pytest.raises(ValueError, match="mysql"):
            runtime_config()

    def test_early_roles_list(self, monkeypatch):
        monkeypatch.setenv("SMART_ROSTER_EARLY_ROLES", "stock, baker ,")
        assert runtime_config().early_roles == ("stock", "baker")


class TestSupabaseConfig:
    def test_missing_key_named(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        with pytest.raises(ValueError, match="SUPABASE_ANON_KEY"):
            get_supabase_config()

    def test_trailing_slash_dropped(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co/")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        assert get_supabase_config().url == "https://example.supabase.co"


class TestHeuristics:
    def test_file_and_env_overrides(self, monkeypatch, tmp_path):
        path = tmp_path / "heuristics.json"
        path.write_text(json.dumps({"closing_cutoff": 1700}), encoding="utf-8")
        monkeypatch.setenv("SMART_ROSTER_HEURISTICS_FILE", str(path))
        monkeypatch.setenv("SMART_ROSTER_EARLY_ROLES", "cashier")

        h = load_heuristics()
        assert h.closing_cutoff == 1700
        assert h.early_role_keywords == ("cashier",)

    def test_missing_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SMART_ROSTER_HEURISTICS_FILE", str(tmp_path / "nope.json"))
        with pytest.raises(FileNotFoundError):
            load_heuristics()


class TestHttpConfig:
    def test_defaults(self):
        cfg = http_config()
        assert (cfg.host, cfg.port, cfg.api_key) == ("0.0.0.0", 8080, None)

    def test_project_key_preferred(self, monkeypatch):
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("MCP_API_KEY", "old")
        monkeypatch.setenv("SMART_ROSTER_API_KEY", " new ")
        cfg = http_config()
        assert (cfg.port, cfg.api_key) == (9001, "new")

    def test_bad_port(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ValueError, match="eighty"):
            http_config()
