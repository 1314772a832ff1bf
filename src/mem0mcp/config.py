"""Application configuration dataclasses.

Frozen dataclasses with sensible defaults for each subsystem.
Loading from the environment and ``mcp.json`` lives in
``mem0mcp.config_reader``; everything here is plain data that can be
overridden at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

from mem0mcp.storage.workspace import WorkspaceEnv

DEFAULT_SERVER_NAME = "mem0-http"


@dataclass(frozen=True)
class StorageConfig:
    """Storage provider selection and location overrides."""

    provider: str = "local"
    storage_directory: str | None = None
    database_url: str | None = None
    workspace_env: WorkspaceEnv = field(default_factory=WorkspaceEnv.from_environ)


@dataclass(frozen=True)
class HTTPConfig:
    """Settings for the HTTP API surface."""

    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = 8484
    api_token: str | None = None
    rate_limit_window_ms: int = 15 * 60 * 1000
    rate_limit_max_requests: int = 100


@dataclass(frozen=True)
class ServerConfig:
    """Top-level settings shared by both transports."""

    name: str = DEFAULT_SERVER_NAME
    transport: str = "sse"
    host: str = "0.0.0.0"
    port: int = 8484
    default_user_id: str = "user"
    max_search_results: int = 3
    debug: bool = False
    mcp_auth_key: str | None = None
    storage: StorageConfig = field(default_factory=StorageConfig)
    http: HTTPConfig = field(default_factory=HTTPConfig)
