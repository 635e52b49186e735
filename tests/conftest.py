"""Pytest bootstrap ensuring the in-repo xfs_mcp package is imported.

If an older installed copy of xfs_mcp exists in site-packages, running a
single test file directly could resolve that one first.
"""

import os, sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if REPO_ROOT not in sys.path:
    # Prepend so it wins over any site-packages installation
    sys.path.insert(0, REPO_ROOT)
