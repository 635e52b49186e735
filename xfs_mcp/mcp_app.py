import os, time
from dataclasses import asdict
from typing import List, Optional, Dict, Any

from .ingestion.parser import ParseFailure, METRIC_CATALOG, METRIC_INDEX, RECORD_PARSERS
from .ingestion.xfs_ingest import resolve_stat_path, snapshot
from .debug_util import dbg
from fastmcp import FastMCP

# ----------------- System Prompt Guidance -----------------
SYSTEM_PROMPT = (
    "Workflow:\n"
    "1. healthz() tells you which stat file is used and whether it exists.\n"
    "2. xfs_stat(path=optional) returns the whole report grouped by record (extent_allocation, allocation_btree, ...).\n"
    "3. xfs_metrics(path=optional, record_types=[...]) returns flat counter samples named xfs_<record>_<field>_total.\n"
    "4. Use xfs_metric_discover(query) to find metric names, then xfs_metric_schema(name) for its description.\n"
    "5. All values are cumulative unsigned 32-bit counters since module load; compare two reads to get rates and expect wraparound on busy systems.\n"
)

mcp = FastMCP("xfs-stat-mcp")


def _error(e: Exception) -> dict:
    out = {'error': e.__class__.__name__, 'detail': str(e).split('\n')[0]}
    if isinstance(e, ParseFailure):
        out['reason'] = e.reason
        out['position'] = e.position
    return out


def _sample_dict(s) -> dict:
    return {'name': s.name, 'value': s.value, 'ts_ms': s.ts_ms, 'labels': dict(s.labels)}


def _xfs_stat_impl(path: Optional[str]=None) -> dict:
    """Implementation for xfs_stat tool (separated for testability)."""
    dbg(f'xfs_stat: path={path!r}')
    try:
        snap = snapshot(path)
    except (OSError, ParseFailure) as e:
        return _error(e)
    return {'path': snap['path'], 'ts_ms': snap['ts_ms'], **snap['report']}


def _xfs_metrics_impl(path: Optional[str]=None, record_types: Optional[List[str]]=None) -> dict:
    dbg(f'xfs_metrics: path={path!r} record_types={record_types}')
    unknown = [r for r in (record_types or []) if r not in RECORD_PARSERS]
    if unknown:
        return {'error': 'unknown_record_type', 'detail': ','.join(unknown), 'known': list(RECORD_PARSERS)}
    try:
        snap = snapshot(path, record_types=record_types)
    except (OSError, ParseFailure) as e:
        return _error(e)
    samples = [_sample_dict(s) for s in snap['samples']]
    return {'path': snap['path'], 'ts_ms': snap['ts_ms'], 'samples': samples, 'count': len(samples)}


def _metric_discover_impl(query: str, top_k: int=5) -> dict:
    """Token substring scoring over metric names, record keywords and descriptions."""
    q = query.lower().strip()
    tokens = {t for t in q.replace('-', ' ').replace(':', ' ').replace('_', ' ').split() if t}
    if top_k <= 0 or not tokens:
        return {'query': query, 'candidates': []}
    candidates = []
    for doc in METRIC_CATALOG:
        score = sum(2 for tok in tokens if tok in doc.name)
        score += sum(1 for tok in tokens if tok in doc.description.lower())
        if doc.record_type in tokens:
            score += 1
        if score == 0:
            continue
        candidates.append({**asdict(doc), 'score': score})
    # stable sort keeps catalog order among ties
    candidates.sort(key=lambda x: x['score'], reverse=True)
    return {'query': query, 'candidates': candidates[:top_k]}


def _metric_schema_impl(metric_name: str) -> dict:
    name = (metric_name or '').strip().lower()
    doc = METRIC_INDEX.get(name)
    if not doc:
        return {'error': 'unknown_metric', 'metric_name': metric_name}
    return {**asdict(doc), 'type': 'counter', 'bits': 32}


def _healthz_impl() -> dict:
    stat_path = resolve_stat_path()
    return {'status': 'ok', 'time': int(time.time()*1000), 'stat_path': stat_path, 'stat_present': os.path.exists(stat_path)}


@mcp.tool()
def xfs_stat(path: Optional[str]=None) -> dict:
    """Read the XFS stat file and return the full report grouped by record.

    Returns {path, ts_ms, extent_allocation{...}, allocation_btree{...}, ..., tail_pushing_stats{...}}
    or {'error':...} when the file is missing or malformed."""
    return _xfs_stat_impl(path)


@mcp.tool()
def xfs_metrics(path: Optional[str]=None, record_types: Optional[List[str]]=None) -> dict:
    """Return flat counter samples {name,value,ts_ms,labels}, optionally limited to record keywords
    (extent_alloc, abt, blk_map, bmbt, dir, trans, ig, log, push_ail).
    record_types omitted returns every record; an empty list returns no samples."""
    return _xfs_metrics_impl(path, record_types)


@mcp.tool()
def xfs_metric_discover(query: str, top_k: int = 5) -> dict:
    """Lexical metric discovery. Returns {query, candidates[]} truncated to top_k."""
    return _metric_discover_impl(query, top_k)


@mcp.tool()
def xfs_metric_schema(metric_name: str) -> dict:
    """Describe one metric: {name, record_type, field, description, type, bits} or {'error':'unknown_metric'}."""
    return _metric_schema_impl(metric_name)


@mcp.tool()
def healthz() -> dict:
    return _healthz_impl()


def init_server() -> Dict[str, Any]:
    """Probe the stat file once so startup logs show whether it parses."""
    status: Dict[str, Any] = _healthz_impl()
    if status['stat_present']:
        probe = _xfs_stat_impl()
        status['parse'] = 'ok' if 'error' not in probe else probe
    return status


if __name__ == '__main__':
    print('Initializing server...')
    print(init_server())
    host = os.environ.get('HOST','0.0.0.0')
    port = int(os.environ.get('PORT','8000'))
    print(f'Starting FastMCP on {host}:{port}')
    mcp.run(transport="http", host=host, port=port, stateless_http=True)
