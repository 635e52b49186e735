from __future__ import annotations
import os, errno, time
import stat as stat_module
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Dict, Any, Iterable, Iterator, Optional, Union

from .records import (
    ExtentAllocation, AllocationBTree, BlockMapping, BlockMapBTree, DirectoryOperations,
    Transactions, InodeOperations, LogOperations, TailPushingStats, XfsStat,
    RECORD_LAYOUT, export_name,
)
from ..debug_util import parser_trace

"""XFS stat report parser

Input is the whole text of /proc/fs/xfs/stat, e.g.

    extent_alloc 4260849 125170297 4618726 131131897
    abt 29491162 337391304 11257328 11133039
    ...
    push_ail 171473415 0 6896837 3324292 8069877 65884 1289485 0 22535 7337
    xstrat 4140059 0
    ...

Grammar (no backtracking across lines):
    report  := record(extent_alloc) NL record(abt) NL ... NL record(push_ail) <anything>
    record  := KEYWORD (SP+ U32){arity}
    SP      := ' ' | '\\t'
    NL      := '\\n'
    U32     := [0-9]+   (value must fit in 32 bits)

Lines after push_ail (xstrat, rw, attr, icluster, vnodes, buf, xpc, debug)
are neither parsed nor validated.

Every step takes (buf, pos) and returns (value, new_pos) or raises
ParseFailure. A failed step never hands back an advanced position, so
callers always see the position they started from.
"""

U32_MAX = 0xFFFFFFFF
_DIGITS = frozenset(b'0123456789')
_SPACES = frozenset(b' \t')
_NEWLINE = 0x0A
# The kernel report is well under 4 KiB.
MAX_STAT_BYTES = 64 * 1024

Buffer = Union[bytes, bytearray, memoryview, str]


class ParseFailure(ValueError):
    """Any deviation from the report grammar.

    reason/position are diagnostics only; callers should treat every
    ParseFailure the same way.
    """

    def __init__(self, reason: str, position: int):
        super().__init__(f"{reason} at byte {position}")
        self.reason = reason
        self.position = position


def _as_bytes(data: Buffer) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return data.encode('ascii')
        except UnicodeEncodeError as e:
            raise ParseFailure('non_ascii_input', e.start) from e
    raise TypeError(f"expected bytes-like or str, got {type(data).__name__}")


def take_u32(buf: Buffer, pos: int = 0) -> tuple[int, int]:
    """Consume the maximal run of ASCII digits at pos as an unsigned 32-bit int."""
    buf = _as_bytes(buf)
    end = pos
    n = len(buf)
    while end < n and buf[end] in _DIGITS:
        end += 1
    if end == pos:
        raise ParseFailure('expected_digit', pos)
    # Leading zeros are legal; strip before the length check so "0000000000001" still fits.
    significant = buf[pos:end].lstrip(b'0')
    if len(significant) > 10:
        raise ParseFailure('u32_overflow', pos)
    value = int(significant or b'0')
    if value > U32_MAX:
        raise ParseFailure('u32_overflow', pos)
    return value, end


def _space(buf: bytes, pos: int) -> int:
    end = pos
    n = len(buf)
    while end < n and buf[end] in _SPACES:
        end += 1
    if end == pos:
        raise ParseFailure('expected_whitespace', pos)
    return end


def _newline(buf: bytes, pos: int) -> int:
    if pos < len(buf) and buf[pos] == _NEWLINE:
        return pos + 1
    raise ParseFailure('expected_newline', pos)


def _keyword_record(keyword: str, record_cls: type):
    """Build the parser for one ``<keyword> <u32> ... <u32>`` line.

    The number of integers and their order come from the record dataclass.
    """
    tag = keyword.encode('ascii')
    arity = len(fields(record_cls))

    def parse_record(buf: Buffer, pos: int = 0) -> tuple[Any, int]:
        buf = _as_bytes(buf)
        if not buf.startswith(tag, pos):
            raise ParseFailure(f'keyword_mismatch:{keyword}', pos)
        cur = pos + len(tag)
        values = []
        try:
            for _ in range(arity):
                cur = _space(buf, cur)
                value, cur = take_u32(buf, cur)
                values.append(value)
        except ParseFailure as e:
            # Report the record start; the whole line is rejected.
            raise ParseFailure(f'{keyword}:{e.reason}', pos) from e
        return record_cls(*values), cur

    parse_record.__name__ = keyword
    parse_record.__qualname__ = keyword
    parse_record.__doc__ = f"Parse a ``{keyword}`` line ({arity} fields) into {record_cls.__name__}."
    return parse_record


extent_alloc = _keyword_record('extent_alloc', ExtentAllocation)
abt = _keyword_record('abt', AllocationBTree)
blk_map = _keyword_record('blk_map', BlockMapping)
bmbt = _keyword_record('bmbt', BlockMapBTree)
dir_ops = _keyword_record('dir', DirectoryOperations)
trans = _keyword_record('trans', Transactions)
ig = _keyword_record('ig', InodeOperations)
log_ops = _keyword_record('log', LogOperations)
push_ail = _keyword_record('push_ail', TailPushingStats)

RECORD_PARSERS = {
    'extent_alloc': extent_alloc,
    'abt': abt,
    'blk_map': blk_map,
    'bmbt': bmbt,
    'dir': dir_ops,
    'trans': trans,
    'ig': ig,
    'log': log_ops,
    'push_ail': push_ail,
}


def parse(data: Buffer) -> XfsStat:
    """Parse a full report; raises ParseFailure unless all nine records are present in order."""
    buf = _as_bytes(data)
    pos = 0
    parsed: Dict[str, Any] = {}
    try:
        for i, (attr, keyword, _cls) in enumerate(RECORD_LAYOUT):
            if i:
                pos = _newline(buf, pos)
            parsed[attr], pos = RECORD_PARSERS[keyword](buf, pos)
    except ParseFailure as e:
        parser_trace(f"report rejected after {len(parsed)} records: {e}")
        raise
    return XfsStat(**parsed)


def parse_or_none(data: Buffer) -> Optional[XfsStat]:
    try:
        return parse(data)
    except ParseFailure:
        return None


# ----------------- Metric flattening -----------------

@dataclass(frozen=True)
class MetricSample:
    name: str
    value: float
    ts_ms: int
    labels: Dict[str, str]


@dataclass(frozen=True)
class MetricDoc:
    name: str
    record_type: str
    field: str
    description: str


# keyed by (keyword, exported field name)
FIELD_DESCRIPTIONS: Dict[tuple, str] = {
    ('extent_alloc', 'allocated_extents'): 'File system extents allocated over all XFS filesystems.',
    ('extent_alloc', 'allocated_blocks'): 'File system blocks allocated over all XFS filesystems.',
    ('extent_alloc', 'freed_extents'): 'File system extents freed over all XFS filesystems.',
    ('extent_alloc', 'freed_blocks'): 'File system blocks freed over all XFS filesystems.',
    ('abt', 'lookups'): 'Lookup operations in allocation btrees.',
    ('abt', 'compares'): 'Compares in allocation btree lookups.',
    ('abt', 'inserts'): 'Extent records inserted into allocation btrees.',
    ('abt', 'deletes'): 'Extent records deleted from allocation btrees.',
    ('blk_map', 'map_read'): 'Block map for read operations on XFS files.',
    ('blk_map', 'map_write'): 'Block map for write operations on XFS files.',
    ('blk_map', 'unmap'): 'Block unmap (delete) operations on XFS files.',
    ('blk_map', 'list_insert'): 'Extent list insertions.',
    ('blk_map', 'list_delete'): 'Extent list deletions.',
    ('blk_map', 'list_lookup'): 'Extent list lookups.',
    ('blk_map', 'list_compare'): 'Extent list comparisons during lookups.',
    ('bmbt', 'lookups'): 'Block map btree lookups.',
    ('bmbt', 'compares'): 'Block map btree compares.',
    ('bmbt', 'inserts'): 'Block map btree records inserted.',
    ('bmbt', 'deletes'): 'Block map btree records deleted.',
    ('dir', 'lookups'): 'Directory lookups that missed the name cache.',
    ('dir', 'creates'): 'Directory entries created.',
    ('dir', 'removes'): 'Directory entries removed.',
    ('dir', 'get_dents'): 'Successful getdents(2) calls on XFS directories.',
    ('trans', 'waited'): 'Synchronous metadata transactions.',
    ('trans', 'async'): 'Asynchronous metadata transactions.',
    ('trans', 'empty'): 'Transactions that changed nothing.',
    ('ig', 'cache_lookups'): 'Inode cache lookups.',
    ('ig', 'cache_hits'): 'Inode cache lookups that found the inode.',
    ('ig', 'cache_recycle'): 'Cache hits unusable because the inode was being recycled.',
    ('ig', 'cache_missed'): 'Inode cache lookups that missed.',
    ('ig', 'cache_dup'): 'Misses where another process inserted the inode first.',
    ('ig', 'cache_reclaim'): 'Inodes reclaimed from the cache.',
    ('ig', 'inode_attr_changes'): 'Explicit inode attribute changes.',
    ('log', 'log_writes'): 'Log buffer writes to the physical log.',
    ('log', 'log_blocks'): 'Log data written, in 512-byte units.',
    ('log', 'noiclogs'): 'Times a transaction found no free in-core log buffer.',
    ('log', 'log_forced'): 'In-core log forces to disk.',
    ('log', 'force_sleep'): 'Sleeps while waiting for a log force.',
    ('push_ail', 'logspace'): 'Attempts to reserve log space.',
    ('push_ail', 'sleep_logspace'): 'Sleeps waiting for log space.',
    ('push_ail', 'push_ails'): 'Times the AIL tail was pushed forward.',
    ('push_ail', 'push_ail_success'): 'Items successfully pushed from the AIL.',
    ('push_ail', 'push_ail_pushbuf'): 'AIL pushes that pushed a buffer.',
    ('push_ail', 'push_ail_pinned'): 'AIL items skipped because pinned.',
    ('push_ail', 'push_ail_locked'): 'AIL items skipped because locked.',
    ('push_ail', 'push_ail_flushing'): 'AIL items skipped because already flushing.',
    ('push_ail', 'push_ail_restarts'): 'AIL push scan restarts.',
    ('push_ail', 'push_ail_flush'): 'AIL pushes that forced a flush.',
}


def metric_name(keyword: str, field_name: str) -> str:
    return f'xfs_{keyword}_{export_name(field_name)}_total'


def _build_catalog() -> list[MetricDoc]:
    docs = []
    for _attr, keyword, record_cls in RECORD_LAYOUT:
        for f in fields(record_cls):
            public = export_name(f.name)
            docs.append(MetricDoc(metric_name(keyword, f.name), keyword, public,
                                  FIELD_DESCRIPTIONS.get((keyword, public), '')))
    return docs


METRIC_CATALOG = _build_catalog()
METRIC_INDEX = {d.name: d for d in METRIC_CATALOG}


def report_to_dict(stat: XfsStat) -> Dict[str, Dict[str, int]]:
    out: Dict[str, Dict[str, int]] = {}
    for attr, _keyword, _cls in RECORD_LAYOUT:
        record = getattr(stat, attr)
        out[attr] = {export_name(f.name): getattr(record, f.name) for f in fields(record)}
    return out


def iter_metric_samples(stat: XfsStat, ts_ms: int, labels: Optional[Dict[str, str]] = None,
                        record_types: Optional[Iterable[str]] = None) -> Iterator[MetricSample]:
    """Flatten a report into one sample per counter, in report order.

    record_types=None keeps every record; an empty collection keeps none.
    """
    wanted = set(record_types) if record_types is not None else None
    extra = labels or {}
    for attr, keyword, _cls in RECORD_LAYOUT:
        if wanted is not None and keyword not in wanted:
            continue
        base = {'record_type': keyword, 'source': 'xfs_stat', 'metric_category': 'XFS'}
        record = getattr(stat, attr)
        for f in fields(record):
            yield MetricSample(metric_name(keyword, f.name), float(getattr(record, f.name)), ts_ms, {**base, **extra})


class XfsStatParser:
    def __init__(self, stat_path: str, allowed_record_types: Optional[set[str]] = None):
        """Parse one stat file on disk.

        The file is read whole at each call; /proc files report a size of
        zero, so nothing here relies on stat() sizes.
        """
        self.stat_path = Path(stat_path)
        self._allowed_record_types = allowed_record_types

    def read_bytes(self) -> bytes:
        # Devices and FIFOs would stream forever or block on open.
        if not stat_module.S_ISREG(os.stat(self.stat_path).st_mode):
            raise OSError(errno.EINVAL, 'not a regular file', str(self.stat_path))
        with self.stat_path.open('rb') as f:
            data = f.read(MAX_STAT_BYTES + 1)
        if len(data) > MAX_STAT_BYTES:
            raise ParseFailure('input_too_large', MAX_STAT_BYTES)
        return data

    def parse(self) -> XfsStat:
        return parse(self.read_bytes())

    def iter_metric_samples(self, ts_ms: Optional[int] = None,
                            labels: Optional[Dict[str, str]] = None) -> Iterator[MetricSample]:
        stat = self.parse()
        if ts_ms is None:
            ts_ms = int(time.time() * 1000)
        return iter_metric_samples(stat, ts_ms, labels, self._allowed_record_types)
