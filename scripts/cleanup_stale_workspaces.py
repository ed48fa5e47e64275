#!/usr/bin/env python3
"""Remove per-run temp workspaces left behind by crashed or killed processes."""

from __future__ import annotations

import argparse
from pathlib import Path

from scribeflow.config import Settings
from scribeflow.pipeline.workspace import sweep_stale_workspaces


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--dry-run", action="store_true", help="Only list, don't delete")
    parser.add_argument(
        "--older-than-hours",
        type=float,
        default=6.0,
        help="Only remove workspaces untouched for this long (default: 6)",
    )
    args = parser.parse_args()

    settings = Settings()
    base = Path(settings.data_dir) / "workdir"
    removed = sweep_stale_workspaces(
        base, older_than_s=float(args.older_than_hours) * 3600, dry_run=bool(args.dry_run)
    )
    print(f"Workspace dir: {base}")
    if not removed:
        print("No stale workspaces to clean up.")
        return
    for path in removed:
        prefix = "[DRY-RUN] Would delete" if args.dry_run else "Deleted"
        print(f"{prefix}: {path.name}")


if __name__ == "__main__":
    main()
