from datetime import datetime
from typing import Iterable, List, Sequence, TextIO

from .models import TradeHalt

HEADER = ["SYMBOL", "NAME", "EXCHANGE", "REASON", "HALT TIME (LOCAL)", "RESUME TIME (LOCAL)"]
TIME_FMT = "%Y-%m-%d %H:%M:%S"
RFC1123Z = "%a, %d %b %Y %H:%M:%S %z"
CLEAR_SCREEN = "\033[2J\033[H"

def _local(ts: datetime | None) -> str:
    if ts is None:
        return ""
    return ts.astimezone().strftime(TIME_FMT)

def align(rows: Sequence[Sequence[str]], padding: int = 2) -> List[str]:
    """Left-align cells into columns as wide as their widest cell plus ``padding``.

    The last column is not padded, so lines carry no trailing blanks.
    """
    if not rows:
        return []
    ncols = max(len(r) for r in rows)
    widths = [0] * ncols
    for r in rows:
        for i, cell in enumerate(r):
            widths[i] = max(widths[i], len(cell))
    lines = []
    for r in rows:
        cells = [cell.ljust(widths[i] + padding) for i, cell in enumerate(r[:-1])]
        cells.append(r[-1] if r else "")
        lines.append("".join(cells).rstrip())
    return lines

def render_table(halts: Iterable[TradeHalt]) -> str:
    rows = [HEADER, ["-" * len(h) for h in HEADER]]
    for h in halts:
        rows.append([h.symbol, h.name, h.exchange, h.reason, _local(h.halt_time), _local(h.resume_time)])
    return "\n".join(align(rows)) + "\n"

def render_footer(fetched_at: datetime, last_modified: datetime | None) -> str:
    updated = last_modified.astimezone().strftime(RFC1123Z) if last_modified else "unknown"
    lines = align([
        ["Last fetch", f"@ {fetched_at.astimezone().strftime(RFC1123Z)}"],
        ["Last updated", f"@ {updated}"],
    ], padding=1)
    return "\n".join(lines) + "\n"

def render_screen(halts: Iterable[TradeHalt], fetched_at: datetime, last_modified: datetime | None) -> str:
    return CLEAR_SCREEN + render_table(halts) + "\n" + render_footer(fetched_at, last_modified)

def write(out: TextIO, text: str) -> None:
    out.write(text)
    out.flush()
