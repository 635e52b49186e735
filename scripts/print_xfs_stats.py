#!/usr/bin/env python3
"""Print a couple of XFS log counters from the kernel stat file.

    python scripts/print_xfs_stats.py [--path /proc/fs/xfs/stat]
"""
from __future__ import annotations
import os, sys, argparse

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
REPO_ROOT = os.path.dirname(BASE_DIR)
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from xfs_mcp.ingestion.parser import ParseFailure
from xfs_mcp.ingestion.xfs_ingest import read_stat


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    ap.add_argument('--path', default=None, help='Stat file (default: $XFS_STAT_PATH or /proc/fs/xfs/stat)')
    args = ap.parse_args(argv)
    try:
        stats = read_stat(args.path)
    except (OSError, ParseFailure) as e:
        print(f"Error: {e!r}", file=sys.stderr)
        return 1
    print("XFS Stats")
    print("=========")
    print(f"Log writes: {stats.log_operations.log_writes}")
    print(f"Log blocks: {stats.log_operations.log_blocks}")
    return 0


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
