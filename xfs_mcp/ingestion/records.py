"""Typed records for the XFS kernel counter report (/proc/fs/xfs/stat).

Each record mirrors one keyword-prefixed line. Field order matches the
order the kernel prints the counters in, and is what the parser relies on
when assigning values positionally. All values are unsigned 32-bit.
"""
from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class ExtentAllocation:
    """``extent_alloc`` line."""
    allocated_extents: int  # extents allocated over all XFS filesystems
    allocated_blocks: int
    freed_extents: int
    freed_blocks: int


@dataclass(frozen=True)
class AllocationBTree:
    """``abt`` line: free space allocation btree activity."""
    lookups: int
    compares: int
    inserts: int
    deletes: int


@dataclass(frozen=True)
class BlockMapping:
    """``blk_map`` line: block map and extent list operations on files."""
    map_read: int
    map_write: int
    unmap: int
    list_insert: int
    list_delete: int
    list_lookup: int
    list_compare: int


@dataclass(frozen=True)
class BlockMapBTree:
    """``bmbt`` line."""
    lookups: int
    compares: int
    inserts: int
    deletes: int


@dataclass(frozen=True)
class DirectoryOperations:
    """``dir`` line.

    lookups only counts lookups that missed the dentry cache and had to
    search the on-disk directory. get_dents matches successful getdents(2)
    calls on XFS directories.
    """
    lookups: int
    creates: int
    removes: int
    get_dents: int


@dataclass(frozen=True)
class Transactions:
    """``trans`` line: synchronous, asynchronous and empty transactions.

    ``async`` is a reserved word, so the attribute is ``async_``; the
    exported name (dicts, metric names) is ``async``.
    """
    waited: int
    async_: int
    empty: int


@dataclass(frozen=True)
class InodeOperations:
    """``ig`` line: inode cache behaviour plus attribute changes."""
    cache_lookups: int
    cache_hits: int
    cache_recycle: int
    cache_missed: int
    cache_dup: int
    cache_reclaim: int
    inode_attr_changes: int


@dataclass(frozen=True)
class LogOperations:
    """``log`` line. log_blocks is counted in 512-byte units."""
    log_writes: int
    log_blocks: int
    noiclogs: int
    log_forced: int
    force_sleep: int


@dataclass(frozen=True)
class TailPushingStats:
    """``push_ail`` line: AIL tail pushing."""
    logspace: int
    sleep_logspace: int
    push_ails: int
    push_ail_success: int
    push_ail_pushbuf: int
    push_ail_pinned: int
    push_ail_locked: int
    push_ail_flushing: int
    push_ail_restarts: int
    push_ail_flush: int


@dataclass(frozen=True)
class XfsStat:
    extent_allocation: ExtentAllocation
    allocation_btree: AllocationBTree
    block_mapping: BlockMapping
    block_map_btree: BlockMapBTree
    directory_operations: DirectoryOperations
    transactions: Transactions
    inode_operations: InodeOperations
    log_operations: LogOperations
    tail_pushing_stats: TailPushingStats


# (report attribute, line keyword, record class) in the order the kernel prints them.
RECORD_LAYOUT = [
    ('extent_allocation', 'extent_alloc', ExtentAllocation),
    ('allocation_btree', 'abt', AllocationBTree),
    ('block_mapping', 'blk_map', BlockMapping),
    ('block_map_btree', 'bmbt', BlockMapBTree),
    ('directory_operations', 'dir', DirectoryOperations),
    ('transactions', 'trans', Transactions),
    ('inode_operations', 'ig', InodeOperations),
    ('log_operations', 'log', LogOperations),
    ('tail_pushing_stats', 'push_ail', TailPushingStats),
]


def export_name(field_name: str) -> str:
    """Public spelling of a record attribute (drops the keyword-escape underscore)."""
    return field_name.rstrip('_')
