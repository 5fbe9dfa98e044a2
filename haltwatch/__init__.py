"""
haltwatch

Fetch and watch the NYSE trade halt feed from the terminal.
"""

__version__ = "0.1.0"

from haltwatch.core.errors import ConfigError, HaltWatchError, MalformedFeedError, TransportError
from haltwatch.core.models import TradeHalt
from haltwatch.core.snapshot import SnapshotDiff, build_snapshot, diff_snapshot

__all__ = [
    "__version__",
    "TradeHalt",
    # Errors
    "HaltWatchError",
    "TransportError",
    "MalformedFeedError",
    "ConfigError",
    # Diffing
    "SnapshotDiff",
    "build_snapshot",
    "diff_snapshot",
]
