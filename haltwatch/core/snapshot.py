from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .models import TradeHalt

Snapshot = Dict[str, TradeHalt]


@dataclass
class SnapshotDiff:
    alert: bool
    state: Snapshot
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)


def build_snapshot(halts: Iterable[TradeHalt]) -> Snapshot:
    # later rows for the same symbol replace earlier ones
    snap: Snapshot = {}
    for h in halts:
        snap[h.symbol] = h
    return snap

def diff_snapshot(current: Snapshot, prior: Snapshot) -> SnapshotDiff:
    """Compare ``current`` against ``prior`` and return the state to keep.

    New symbols and resume-time changes raise the alert. Symbols missing from
    ``current`` stay in the returned state; ``prior`` itself is not modified.
    """
    state = dict(prior)
    added, updated = [], []
    for sym, halt in current.items():
        old = state.get(sym)
        if old is None:
            added.append(sym)
            state[sym] = halt
        elif old.resume_time != halt.resume_time:
            updated.append(sym)
            state[sym] = halt
    return SnapshotDiff(alert=bool(added or updated), state=state, added=added, updated=updated)
