"""Unit tests for environment and mcp.json configuration loading."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from mem0mcp.config_reader import candidate_config_paths
from mem0mcp.config_reader import detect_editor_workspace
from mem0mcp.config_reader import extract_server_config
from mem0mcp.config_reader import load_config
from mem0mcp.config_reader import read_mcp_config
from mem0mcp.config_reader import validate_storage_directory
from mem0mcp.storage.workspace import WorkspaceEnv


@pytest.fixture()
def project(tmp_path) -> Path:
    """An isolated cwd; HOME is its parent so the upward walk stays inside."""
    cwd = tmp_path / "proj"
    cwd.mkdir()
    return cwd


def _base_env(project: Path, **extra: str) -> dict[str, str]:
    return {"HOME": str(project.parent), **extra}


def _write_mcp_json(path: Path, servers: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"mcpServers": servers}), encoding="utf-8")


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class TestLoadConfigFromEnvironment:
    def test_defaults(self, project):
        cfg = load_config(_base_env(project), cwd=str(project))

        assert cfg.name == "mem0-http"
        assert cfg.transport == "sse"
        assert cfg.port == 8484
        assert cfg.default_user_id == "user"
        assert cfg.max_search_results == 3
        assert cfg.debug is False
        assert cfg.mcp_auth_key is None
        assert cfg.storage.provider == "local"
        assert cfg.http.enabled is False
        assert cfg.http.api_token is None

    def test_reads_variables(self, project):
        env = _base_env(
            project,
            TRANSPORT="stdio",
            PORT="9000",
            DEFAULT_USER_ID="alice",
            MAX_SEARCH_RESULTS="7",
            DEBUG="true",
            STORAGE_PROVIDER="postgresql",
            DATABASE_URL="postgresql://db/mem",
            HTTP_SERVER_ENABLED="1",
            HTTP_SERVER_PORT="9100",
            API_TOKEN="secret",
            RATE_LIMIT_MAX_REQUESTS="5",
            RATE_LIMIT_WINDOW_MS="1000",
            LOCAL_STORAGE_DIR="/data/mem",
        )

        cfg = load_config(env, cwd=str(project))

        assert cfg.transport == "stdio"
        assert cfg.port == 9000
        assert cfg.default_user_id == "alice"
        assert cfg.max_search_results == 7
        assert cfg.debug is True
        assert cfg.storage.provider == "postgresql"
        assert cfg.storage.database_url == "postgresql://db/mem"
        assert cfg.storage.workspace_env.storage_dir == "/data/mem"
        assert cfg.http.enabled is True
        assert cfg.http.port == 9100
        assert cfg.http.api_token == "secret"
        assert cfg.http.rate_limit_max_requests == 5
        assert cfg.http.rate_limit_window_ms == 1000

    def test_http_port_defaults_to_server_port(self, project):
        cfg = load_config(_base_env(project, PORT="9001"), cwd=str(project))
        assert cfg.http.port == 9001

    def test_bad_integer_falls_back(self, project):
        cfg = load_config(_base_env(project, PORT="eighty"), cwd=str(project))
        assert cfg.port == 8484


# ---------------------------------------------------------------------------
# mcp.json
# ---------------------------------------------------------------------------


class TestExtractServerConfig:
    def test_picks_first_mem0_entry(self):
        extracted = extract_server_config(
            {
                "mcpServers": {
                    "other": {"command": "x"},
                    "mem0-local": {
                        "env": {"DEFAULT_USER_ID": "bob", "PORT": 9000},
                        "storage_directory": "data",
                        "max_search_results": 5,
                    },
                    "mem0-second": {"default_user_id": "ignored"},
                }
            }
        )

        assert extracted == {
            "name": "mem0-local",
            "env": {"DEFAULT_USER_ID": "bob", "PORT": "9000"},
            "storage_directory": "data",
            "max_search_results": 5,
        }

    def test_matches_description_and_url(self):
        by_description = extract_server_config(
            {"mcpServers": {"memory": {"description": "Mem0 memory server"}}}
        )
        by_url = extract_server_config(
            {"mcpServers": {"remote": {"url": "http://localhost:8484/mem0"}}}
        )
        assert by_description["name"] == "memory"
        assert by_url["name"] == "remote"

    def test_no_servers_section(self):
        assert extract_server_config({}) is None

    def test_no_matching_server(self):
        assert extract_server_config({"mcpServers": {"github": {}}}) is None


class TestConfigFileDiscovery:
    def test_read_skips_missing_and_invalid(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")
        good = tmp_path / "good.json"
        good.write_text('{"mcpServers": {}}')

        assert read_mcp_config([tmp_path / "absent.json", bad, good]) == {"mcpServers": {}}
        assert read_mcp_config([tmp_path / "absent.json"]) is None

    def test_candidate_paths_order(self, project):
        env = WorkspaceEnv(cwd=str(project), project_dir="/p", home=str(project.parent))

        paths = candidate_config_paths({"MCP_CONFIG_PATH": "conf/custom.json"}, env)

        assert paths == [
            Path("/p/.roo/mcp.json"),
            Path("/p/mcp.json"),
            project / ".roo" / "mcp.json",
            project / "mcp.json",
            project / "conf" / "custom.json",
        ]

    def test_pwd_equal_to_cwd_is_not_repeated(self, project):
        env = WorkspaceEnv(cwd=str(project), pwd=str(project), home=str(project.parent))
        assert candidate_config_paths({}, env) == [
            project / ".roo" / "mcp.json",
            project / "mcp.json",
        ]

    def test_detects_editor_workspace_above_cwd(self, project):
        (project / ".vscode").mkdir()
        nested = project / "src" / "pkg"
        nested.mkdir(parents=True)
        env = WorkspaceEnv(cwd=str(nested), home=str(project.parent))

        assert detect_editor_workspace(env) == project
        assert project / ".roo" / "mcp.json" in candidate_config_paths({}, env)


class TestLoadConfigFromFile:
    def test_file_values_win_over_environment(self, project):
        _write_mcp_json(
            project / ".roo" / "mcp.json",
            {
                "mem0": {
                    "env": {"DEFAULT_USER_ID": "from-env-block", "API_TOKEN": "file-token"},
                    "default_user_id": "from-file",
                    "storage_provider": "local",
                    "storage_directory": "store",
                    "max_search_results": 9,
                }
            },
        )
        env = _base_env(project, DEFAULT_USER_ID="from-process", API_TOKEN="env-token")

        cfg = load_config(env, cwd=str(project))

        assert cfg.name == "mem0"
        assert cfg.default_user_id == "from-file"
        assert cfg.max_search_results == 9
        assert cfg.http.api_token == "file-token"
        assert cfg.storage.storage_directory == "store"
        assert (project / "store").is_dir()

    def test_env_block_does_not_touch_process_environment(self, project, monkeypatch):
        monkeypatch.delenv("MEM0_TEST_ONLY", raising=False)
        _write_mcp_json(project / "mcp.json", {"mem0": {"env": {"MEM0_TEST_ONLY": "1"}}})

        load_config(_base_env(project), cwd=str(project))

        assert "MEM0_TEST_ONLY" not in os.environ

    def test_env_block_supplies_mcp_auth_key(self, project):
        _write_mcp_json(project / "mcp.json", {"mem0": {"env": {"MCP_AUTH_KEY": "sekret"}}})

        cfg = load_config(_base_env(project), cwd=str(project))

        assert cfg.mcp_auth_key == "sekret"

    def test_env_block_feeds_workspace_signals(self, project):
        _write_mcp_json(
            project / "mcp.json", {"mem0": {"env": {"LOCAL_STORAGE_DIR": "/srv/memories"}}}
        )

        cfg = load_config(_base_env(project), cwd=str(project))

        assert cfg.storage.workspace_env.storage_dir == "/srv/memories"

    def test_unwritable_storage_directory_is_dropped(self, project):
        (project / "blocker").write_text("a file, not a directory")
        _write_mcp_json(
            project / "mcp.json", {"mem0": {"storage_directory": "blocker/store"}}
        )

        cfg = load_config(_base_env(project), cwd=str(project))

        assert cfg.storage.storage_directory is None


class TestValidateStorageDirectory:
    def test_creates_and_checks_writability(self, tmp_path):
        assert validate_storage_directory("a/b", cwd=str(tmp_path))
        assert (tmp_path / "a" / "b").is_dir()
        assert list((tmp_path / "a" / "b").iterdir()) == []

    def test_rejects_path_under_file(self, tmp_path):
        (tmp_path / "f").write_text("x")
        assert not validate_storage_directory("f/sub", cwd=str(tmp_path))
