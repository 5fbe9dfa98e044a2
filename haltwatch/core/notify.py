from typing import TextIO

BELL = "\a"

def ring_bell(out: TextIO) -> None:
    """Emit a single terminal bell; callers ring at most once per cycle."""
    out.write(BELL)
    out.flush()
