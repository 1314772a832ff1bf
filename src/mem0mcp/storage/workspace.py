"""Workspace discovery for the local storage root.

The resolver turns a snapshot of environment signals into one base
directory.  Signals are evaluated in strict priority order and the first
match wins:

1. explicit storage directory from configuration
2. ``LOCAL_STORAGE_DIR`` holding an absolute path
3. ``LOCAL_STORAGE_DIR`` holding any non-default value (test isolation)
4. ``PROJECT_DIR``
5. ``VSCODE_WORKSPACE_FOLDER`` then ``VSCODE_CWD``
6. ``PWD`` when it differs from the real cwd
7. ``INIT_CWD`` when it differs from the real cwd
8. an upward walk from cwd scoring project-root markers
9. ``<cwd>/.Mem0-Files``

The resolver reads only the ``WorkspaceEnv`` it is given and never
touches ``os.environ``.  It never raises.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIRNAME = ".Mem0-Files"
DEFAULT_MAX_DEPTH = 8

EDITOR_MARKERS = (".vscode", ".roo", ".idea")
VCS_MARKERS = (".git", ".hg", ".svn")
MANIFEST_MARKERS = (
    "package.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "Cargo.toml",
    "go.mod",
    "pom.xml",
    "build.gradle",
    "composer.json",
    "Gemfile",
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class WorkspaceEnv:
    """Immutable snapshot of the signals used for workspace discovery."""

    cwd: str
    storage_dir: str | None = None
    project_dir: str | None = None
    workspace_folder: str | None = None
    editor_cwd: str | None = None
    pwd: str | None = None
    init_cwd: str | None = None
    home: str | None = None

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        cwd: str | None = None,
    ) -> WorkspaceEnv:
        """Capture the relevant variables from *environ* (default ``os.environ``)."""
        env = os.environ if environ is None else environ
        return cls(
            cwd=cwd or os.getcwd(),
            storage_dir=_clean(env.get("LOCAL_STORAGE_DIR")),
            project_dir=_clean(env.get("PROJECT_DIR")),
            workspace_folder=_clean(env.get("VSCODE_WORKSPACE_FOLDER")),
            editor_cwd=_clean(env.get("VSCODE_CWD")),
            pwd=_clean(env.get("PWD")),
            init_cwd=_clean(env.get("INIT_CWD")),
            home=_clean(env.get("HOME")),
        )


@dataclass(frozen=True)
class WorkspaceCandidate:
    """One ancestor directory inspected during the upward walk."""

    path: Path
    level: int
    has_editor_config: bool
    has_vcs: bool
    has_manifest: bool

    @property
    def is_project_root(self) -> bool:
        return self.has_vcs or self.has_manifest

    @property
    def has_markers(self) -> bool:
        return self.has_editor_config or self.is_project_root


def _rank(candidate: WorkspaceCandidate) -> tuple[int, int, int]:
    """Sort key, smaller is better."""
    if candidate.is_project_root and candidate.has_editor_config:
        return (0, candidate.level, 0)
    if candidate.is_project_root:
        return (1, 0 if candidate.has_vcs else 1, candidate.level)
    return (2, 0, candidate.level)


@dataclass(frozen=True)
class WorkspaceResolution:
    """Resolved base directory and the signal that produced it."""

    base_dir: Path
    source: str


class WorkspaceResolver:
    """Pick one storage base directory from a ``WorkspaceEnv``."""

    def __init__(
        self,
        env: WorkspaceEnv,
        *,
        explicit_dir: str | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        dirname: str = DEFAULT_STORAGE_DIRNAME,
    ) -> None:
        self._env = env
        self._explicit_dir = _clean(explicit_dir)
        self._max_depth = max_depth
        self._dirname = dirname

    def resolve(self) -> WorkspaceResolution:
        env = self._env
        cwd = Path(env.cwd)

        if self._explicit_dir is not None:
            return self._pick(cwd / self._explicit_dir / self._dirname, "explicit")

        if env.storage_dir is not None:
            storage_dir = Path(env.storage_dir)
            if storage_dir.is_absolute():
                return self._pick(storage_dir, "LOCAL_STORAGE_DIR")
            if env.storage_dir != self._dirname:
                return self._pick(cwd / storage_dir, "LOCAL_STORAGE_DIR")

        for source, value in (
            ("PROJECT_DIR", env.project_dir),
            ("VSCODE_WORKSPACE_FOLDER", env.workspace_folder),
            ("VSCODE_CWD", env.editor_cwd),
        ):
            if value is not None:
                return self._pick(cwd / value / self._dirname, source)

        for source, value in (("PWD", env.pwd), ("INIT_CWD", env.init_cwd)):
            if value is not None and not self._same_dir(Path(value), cwd):
                return self._pick(cwd / value / self._dirname, source)

        detected = self.detect_workspace()
        if detected is not None:
            return self._pick(detected / self._dirname, "workspace-walk")

        logger.warning(
            "No workspace signal found; storing memories under %s",
            cwd / self._dirname,
        )
        return WorkspaceResolution(cwd / self._dirname, "cwd-fallback")

    def detect_workspace(self) -> Path | None:
        """Walk up from cwd and return the best-ranked project directory."""
        candidates = [c for c in self.walk() if c.has_markers]
        if not candidates:
            return None
        best = min(candidates, key=_rank)
        logger.info(
            "Detected workspace at %s (level=%d, editor=%s, vcs=%s)",
            best.path,
            best.level,
            best.has_editor_config,
            best.has_vcs,
        )
        return best.path

    def walk(self) -> list[WorkspaceCandidate]:
        """Inspect cwd and its ancestors up to the depth and home limits."""
        home = Path(self._env.home) if self._env.home else None
        current = Path(self._env.cwd)
        inspected: list[WorkspaceCandidate] = []
        for level in range(self._max_depth):
            if home is not None and self._same_dir(current, home):
                break
            inspected.append(self._inspect(current, level))
            parent = current.parent
            if parent == current:
                break
            current = parent
        return inspected

    @staticmethod
    def _inspect(directory: Path, level: int) -> WorkspaceCandidate:
        try:
            names = set(os.listdir(directory))
        except OSError as exc:
            logger.debug("Cannot read directory %s: %s", directory, exc)
            names = set()
        return WorkspaceCandidate(
            path=directory,
            level=level,
            has_editor_config=any(m in names for m in EDITOR_MARKERS),
            has_vcs=any(m in names for m in VCS_MARKERS),
            has_manifest=any(m in names for m in MANIFEST_MARKERS),
        )

    @staticmethod
    def _same_dir(left: Path, right: Path) -> bool:
        return os.path.normpath(left) == os.path.normpath(right)

    @staticmethod
    def _pick(path: Path, source: str) -> WorkspaceResolution:
        logger.info("Using storage directory %s (from %s)", path, source)
        return WorkspaceResolution(path, source)
