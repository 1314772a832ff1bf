"""Report where memories would be stored and how the index compares to records.

Usage:
    uv run python scripts/inspect_storage.py \
      --storage-directory ./my-project \
      --output reports/storage.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path

from mem0mcp.storage import LocalStorageProvider
from mem0mcp.storage.workspace import WorkspaceEnv
from mem0mcp.storage.workspace import WorkspaceResolver


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.add_argument("--storage-directory", default=None)
    parser.add_argument("--output", default=None)
    return parser.parse_args()


async def _user_report(provider: LocalStorageProvider, user_id: str) -> dict:
    records = await provider.get_all(user_id, 1_000_000)
    index = await provider.index.read(user_id)
    record_ids = {record.id for record in records}
    index_ids = set(index["memories"])
    return {
        "records": len(records),
        "index_entries": len(index_ids),
        "missing_from_index": sorted(record_ids - index_ids),
        "stale_in_index": sorted(index_ids - record_ids),
    }


async def _main() -> int:
    args = _parse_args()
    env = WorkspaceEnv.from_environ(os.environ)
    resolver = WorkspaceResolver(env, explicit_dir=args.storage_directory)
    resolution = resolver.resolve()

    report: dict = {
        "base_dir": str(resolution.base_dir),
        "source": resolution.source,
        "walk": [
            {
                "path": str(candidate.path),
                "level": candidate.level,
                "editor": candidate.has_editor_config,
                "vcs": candidate.has_vcs,
                "manifest": candidate.has_manifest,
            }
            for candidate in resolver.walk()
            if candidate.has_markers
        ],
        "users": {},
    }

    users_dir = resolution.base_dir / "users"
    if users_dir.is_dir():
        provider = LocalStorageProvider(args.storage_directory, workspace_env=env)
        await provider.initialize()
        for user_dir in sorted(p for p in users_dir.iterdir() if p.is_dir()):
            report["users"][user_dir.name] = await _user_report(provider, user_dir.name)

    text = json.dumps(report, indent=2, sort_keys=True)
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n", encoding="utf-8")
    print(text)
    drifted = any(
        user["missing_from_index"] or user["stale_in_index"]
        for user in report["users"].values()
    )
    return 1 if drifted else 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(_main()))
