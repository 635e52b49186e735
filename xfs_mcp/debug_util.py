"""Logging for the XFS stat service.

Everything is off by default and switched on through the environment:
DEBUG_VERBOSE=1 traces stat file reads and tool calls, DEBUG_XFS_PARSER=1
logs why a report was rejected.
"""
import os, logging, sys

logger = logging.getLogger("xfs_mcp")

def _ensure_logger():
    """Attach a basic StreamHandler if none present.

    Done lazily so importing the module does not override the host
    application's logging configuration. A handler is only added once a
    debug message is actually emitted (DEBUG_VERBOSE=1).
    """
    if logger.handlers:
        return
    logger.setLevel(logging.INFO)
    h = logging.StreamHandler(stream=sys.stdout)
    fmt = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    h.setFormatter(fmt)
    logger.addHandler(h)

def dbg(msg: str):
    """Emit a debug info line when DEBUG_VERBOSE=1.

    Used for loader and tool tracing (stat path resolution, snapshot sizes,
    tool arguments). Parser rejections go through parser_trace instead.
    """
    if os.environ.get('DEBUG_VERBOSE') == '1':
        _ensure_logger()
        logger.info('[debug] %s', msg)

def parser_trace(msg: str):
    """Parser-level tracing, enabled separately with DEBUG_XFS_PARSER=1."""
    if os.environ.get('DEBUG_XFS_PARSER') == '1':
        _ensure_logger()
        logger.info('[parser] %s', msg)
