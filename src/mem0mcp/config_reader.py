"""Build a ``ServerConfig`` from the environment and an optional ``mcp.json``.

MCP clients (VS Code, Roo) keep server settings in ``mcp.json`` files.
The first ``mcpServers`` entry that mentions ``mem0`` supplies overrides;
its ``env`` block is merged into a *copy* of the environment, so the
process environment is never modified.  File values beat environment
values.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from mem0mcp.auth import get_mcp_auth_key
from mem0mcp.config import DEFAULT_SERVER_NAME
from mem0mcp.config import HTTPConfig
from mem0mcp.config import ServerConfig
from mem0mcp.config import StorageConfig
from mem0mcp.storage.workspace import WorkspaceEnv
from mem0mcp.storage.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", key, raw)
        return default


def _env_str(env: Mapping[str, str], key: str) -> str | None:
    raw = env.get(key)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped or None


# ---------------------------------------------------------------------------
# mcp.json discovery
# ---------------------------------------------------------------------------


def detect_editor_workspace(workspace_env: WorkspaceEnv) -> Path | None:
    """Closest ancestor of cwd holding an editor config directory."""
    editor_dirs = [
        candidate
        for candidate in WorkspaceResolver(workspace_env).walk()
        if candidate.has_editor_config and candidate.level > 0
    ]
    if not editor_dirs:
        return None
    return min(editor_dirs, key=lambda c: c.level).path


def candidate_config_paths(
    environ: Mapping[str, str], workspace_env: WorkspaceEnv
) -> list[Path]:
    """Ordered, de-duplicated list of ``mcp.json`` locations to try."""
    cwd = Path(workspace_env.cwd)
    roots: list[Path] = []
    for value in (
        workspace_env.project_dir,
        workspace_env.workspace_folder,
        workspace_env.editor_cwd,
    ):
        if value:
            roots.append(cwd / value)
    for value in (workspace_env.pwd, workspace_env.init_cwd):
        if value and os.path.normpath(value) != os.path.normpath(cwd):
            roots.append(cwd / value)
    detected = detect_editor_workspace(workspace_env)
    if detected is not None:
        roots.append(detected)
    roots.append(cwd)

    paths: list[Path] = []
    for root in roots:
        paths.append(root / ".roo" / "mcp.json")
        paths.append(root / "mcp.json")
    explicit = _env_str(environ, "MCP_CONFIG_PATH")
    if explicit:
        paths.append(cwd / explicit)

    return list(dict.fromkeys(paths))


def read_mcp_config(paths: list[Path]) -> dict[str, Any] | None:
    """Return the parsed content of the first readable JSON file in *paths*."""
    for path in paths:
        try:
            content = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.debug("Config file not usable at %s: %s", path, exc)
            continue
        if isinstance(content, dict):
            logger.info("Found MCP configuration at %s", path.resolve())
            return content
    logger.debug("No MCP configuration file found")
    return None


def _mentions_mem0(name: str, server: Mapping[str, Any]) -> bool:
    description = server.get("description")
    url = server.get("url")
    return (
        "mem0" in name
        or (isinstance(description, str) and "mem0" in description.lower())
        or (isinstance(url, str) and "mem0" in url)
    )


def extract_server_config(client_config: Mapping[str, Any]) -> dict[str, Any] | None:
    """Pick the mem0 entry from ``mcpServers`` and flatten its settings."""
    servers = client_config.get("mcpServers")
    if not isinstance(servers, dict):
        logger.warning("No mcpServers section found in configuration")
        return None

    matches = [
        (name, server)
        for name, server in servers.items()
        if isinstance(server, dict) and _mentions_mem0(name, server)
    ]
    if not matches:
        logger.warning("No mem0 server configuration found")
        return None

    name, server = matches[0]
    logger.info("Using configuration from server: %s", name)

    extracted: dict[str, Any] = {"name": name}
    env = server.get("env")
    if isinstance(env, dict):
        extracted["env"] = {str(k): str(v) for k, v in env.items()}
    for source_key, target_key in (
        ("storage_provider", "storage_provider"),
        ("storage_directory", "storage_directory"),
        ("default_user_id", "default_user_id"),
        ("max_search_results", "max_search_results"),
    ):
        if server.get(source_key):
            extracted[target_key] = server[source_key]
    return extracted


def validate_storage_directory(path: str, *, cwd: str | None = None) -> bool:
    """Create *path* if needed and check that it is writable."""
    directory = Path(cwd or os.getcwd()) / path
    scratch = directory / f".write-test-{uuid.uuid4().hex[:8]}"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        scratch.write_text("test", encoding="utf-8")
        scratch.unlink()
    except OSError as exc:
        logger.error("Storage directory validation failed for %s: %s", path, exc)
        return False
    logger.info("Storage directory validated: %s", directory.resolve())
    return True


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def load_config(
    environ: Mapping[str, str] | None = None,
    *,
    cwd: str | None = None,
) -> ServerConfig:
    """Merge environment variables and ``mcp.json`` into a ``ServerConfig``."""
    env: dict[str, str] = dict(os.environ if environ is None else environ)
    cwd = cwd or os.getcwd()

    file_config = None
    client_config = read_mcp_config(
        candidate_config_paths(env, WorkspaceEnv.from_environ(env, cwd=cwd))
    )
    if client_config is not None:
        file_config = extract_server_config(client_config)

    if file_config is not None:
        overrides = file_config.get("env", {})
        if overrides:
            logger.info("Applying %d environment overrides from MCP configuration", len(overrides))
        env.update(overrides)
        storage_dir = file_config.get("storage_directory")
        if storage_dir and not validate_storage_directory(str(storage_dir), cwd=cwd):
            logger.warning(
                "Invalid storage directory in MCP config, falling back to environment/default"
            )
            file_config.pop("storage_directory")
    else:
        file_config = {}

    host = _env_str(env, "HOST") or "0.0.0.0"
    port = _env_int(env, "PORT", 8484)
    max_results = file_config.get("max_search_results")

    return ServerConfig(
        name=file_config.get("name") or _env_str(env, "MCP_SERVER_NAME") or DEFAULT_SERVER_NAME,
        transport=_env_str(env, "TRANSPORT") or "sse",
        host=host,
        port=port,
        default_user_id=(
            file_config.get("default_user_id") or _env_str(env, "DEFAULT_USER_ID") or "user"
        ),
        max_search_results=(
            int(max_results) if max_results else _env_int(env, "MAX_SEARCH_RESULTS", 3)
        ),
        debug=_env_bool(env, "DEBUG"),
        mcp_auth_key=get_mcp_auth_key(env),
        storage=StorageConfig(
            provider=(
                file_config.get("storage_provider")
                or _env_str(env, "STORAGE_PROVIDER")
                or "local"
            ),
            storage_directory=file_config.get("storage_directory"),
            database_url=_env_str(env, "DATABASE_URL"),
            workspace_env=WorkspaceEnv.from_environ(env, cwd=cwd),
        ),
        http=HTTPConfig(
            enabled=_env_bool(env, "HTTP_SERVER_ENABLED"),
            host=_env_str(env, "HTTP_SERVER_HOST") or host,
            port=_env_int(env, "HTTP_SERVER_PORT", port),
            api_token=_env_str(env, "API_TOKEN"),
            rate_limit_window_ms=_env_int(env, "RATE_LIMIT_WINDOW_MS", 15 * 60 * 1000),
            rate_limit_max_requests=_env_int(env, "RATE_LIMIT_MAX_REQUESTS", 100),
        ),
    )
