import os, time
from typing import List, Dict, Any, Optional, Iterable

from .parser import XfsStatParser, MetricSample, iter_metric_samples, report_to_dict
from .records import XfsStat
from ..debug_util import dbg

DEFAULT_STAT_PATH = '/proc/fs/xfs/stat'


def resolve_stat_path(path: Optional[str] = None) -> str:
    """Explicit path wins, then XFS_STAT_PATH, then the kernel default."""
    if path:
        return path
    return os.environ.get('XFS_STAT_PATH') or DEFAULT_STAT_PATH


def read_stat(path: Optional[str] = None) -> XfsStat:
    """Read and parse the stat file whole.

    Raises FileNotFoundError if the file is absent (XFS module not loaded,
    or not Linux) and ParseFailure if the content does not match.
    """
    stat_path = resolve_stat_path(path)
    dbg(f'read_stat path={stat_path}')
    return XfsStatParser(stat_path).parse()


def get() -> XfsStat:
    return read_stat()


def snapshot(path: Optional[str] = None, record_types: Optional[Iterable[str]] = None,
             host: Optional[str] = None) -> Dict[str, Any]:
    """One timestamped read of the stat file, as report dict plus flat samples.

    Returns {path, ts_ms, report, samples}; samples are MetricSample objects.
    """
    stat_path = resolve_stat_path(path)
    ts_ms = int(time.time() * 1000)
    labels = {'host': host} if host else None
    stat = read_stat(stat_path)
    samples: List[MetricSample] = list(iter_metric_samples(stat, ts_ms, labels, record_types))
    dbg(f'snapshot path={stat_path} samples={len(samples)}')
    return {'path': stat_path, 'ts_ms': ts_ms, 'report': report_to_dict(stat), 'samples': samples}
