import asyncio, csv, io, logging, re, string, time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, List, TextIO

from ..core import config
from ..core.config import FeedConfig
from ..core.errors import MalformedFeedError
from ..core.http import Http
from ..core.models import TradeHalt
from ..core.notify import ring_bell
from ..core.snapshot import Snapshot, build_snapshot, diff_snapshot
from ..core.table import render_screen, render_table, write

TAG = "[HALTS]"

log = logging.getLogger(__name__)


@dataclass
class FeedResult:
    halts: List[TradeHalt]
    last_modified: datetime | None


_ESCAPES = {"a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v", "\\": "\\"}
_HEX_WIDTH = {"x": 2, "u": 4, "U": 8}
_FEED_TIME = re.compile(r"(\d{4})-(\d{2})-(\d{2}) (\d{1,2}):(\d{2}):(\d{2})(?:[.,](\d+))?", re.ASCII)


def _unquote_literal(s: str) -> str:
    """Decode one quoted string literal; ValueError when ``s`` is anything else.

    Accepts a back-quoted raw string, a double-quoted string with backslash
    escapes, or a single-quoted literal holding exactly one character.
    """
    if len(s) < 2 or s[0] != s[-1]:
        raise ValueError("not quoted")
    quote, body = s[0], s[1:-1]
    if quote == "`":
        if "`" in body:
            raise ValueError("back quote inside raw string")
        return body.replace("\r", "")
    if quote not in "\"'" or "\n" in body:
        raise ValueError("not a string literal")

    out = bytearray()
    i = 0
    while i < len(body):
        c = body[i]
        if c == quote:
            raise ValueError("unescaped quote")
        if c != "\\":
            out += c.encode("utf-8")
            i += 1
            continue
        if i + 1 >= len(body):
            raise ValueError("trailing backslash")
        e = body[i + 1]
        i += 2
        if e in _ESCAPES:
            out += _ESCAPES[e].encode()
        elif e in "'\"":
            if e != quote:
                raise ValueError(f"invalid escape \\{e}")
            out += e.encode()
        elif e in _HEX_WIDTH:
            digits = body[i:i + _HEX_WIDTH[e]]
            if len(digits) != _HEX_WIDTH[e] or any(d not in string.hexdigits for d in digits):
                raise ValueError(f"invalid \\{e} escape")
            i += len(digits)
            v = int(digits, 16)
            if e == "x" and quote == '"':
                out.append(v)
            elif 0xD800 <= v <= 0xDFFF or v > 0x10FFFF:
                raise ValueError("invalid code point")
            else:
                out += chr(v).encode("utf-8")
        elif e in "01234567":
            digits = body[i - 1:i + 2]
            if len(digits) != 3 or any(d not in "01234567" for d in digits) or int(digits, 8) > 255:
                raise ValueError("invalid octal escape")
            i += 2
            v = int(digits, 8)
            if quote == '"':
                out.append(v)
            else:
                out += chr(v).encode("utf-8")
        else:
            raise ValueError(f"invalid escape \\{e}")

    text = out.decode("utf-8", errors="replace")
    if quote == "'" and len(text) != 1:
        raise ValueError("character literal must hold one character")
    return text

def try_unquote(s: str) -> str:
    """Undo string-literal quoting around an issuer name, else return ``s`` as is."""
    try:
        return _unquote_literal(s)
    except ValueError:
        return s

def parse_feed_time(date: str, time: str, feed: FeedConfig, symbol: str = "", what: str = "halt") -> datetime | None:
    date, time = date.strip(), time.strip()
    if not date or not time:
        return None
    m = _FEED_TIME.fullmatch(f"{date} {time}")
    try:
        if not m:
            raise ValueError(f"{date} {time} does not match YYYY-MM-DD HH:MM:SS")
        year, month, day, hour, minute, second, frac = m.groups()
        micro = int((frac or "0")[:6].ljust(6, "0"))
        return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), micro,
                        tzinfo=feed.tz)
    except ValueError as e:
        log.warning("%s failed to parse %s datetime for %s: %s", TAG, what, symbol, e)
        return None

def _read_rows(data: bytes) -> List[List[str]]:
    try:
        text = data.decode("utf-8-sig")
        return [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    except (UnicodeDecodeError, csv.Error) as e:
        raise MalformedFeedError(f"failed to read csv: {e}") from e

def parse_trade_halts(data: bytes, feed: FeedConfig | None = None) -> List[TradeHalt]:
    """Parse the halt CSV body into records.

    The first row is the header. Every data row must have exactly
    ``feed.field_count`` fields or the whole body is rejected with
    MalformedFeedError. Unparsable timestamps are logged and left as None.
    """
    feed = feed or FeedConfig()
    rows = _read_rows(data)
    if len(rows) < 2:
        return []

    header, body = rows[0], rows[1:]
    if feed.header is not None and tuple(h.strip() for h in header) != feed.header:
        raise MalformedFeedError(f"unexpected feed header: {header}")

    col = feed.columns
    halts: List[TradeHalt] = []
    for lineno, row in enumerate(body, start=2):
        if len(row) != feed.field_count:
            raise MalformedFeedError(
                f"malformed record on row {lineno}: expected {feed.field_count} fields, got {len(row)}"
            )
        sym = row[col["symbol"]]
        halts.append(TradeHalt(
            symbol=sym,
            name=try_unquote(row[col["name"]]),
            exchange=row[col["exchange"]],
            reason=row[col["reason"]],
            halt_time=parse_feed_time(row[col["halt_date"]], row[col["halt_time"]], feed, sym, "halt"),
            resume_time=parse_feed_time(row[col["resume_date"]], row[col["resume_time"]], feed, sym, "resume"),
        ))
    return halts

def parse_last_modified(value: str | None) -> datetime | None:
    if not value:
        log.warning("%s feed response has no Last-Modified header", TAG)
        return None
    try:
        lm = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as e:
        log.warning("%s failed to parse Last-Modified %r: %s", TAG, value, e)
        return None
    # "-0000" yields a naive value; HTTP dates are GMT
    return lm if lm.tzinfo else lm.replace(tzinfo=timezone.utc)

async def fetch_trade_halts(http: Http, feed: FeedConfig) -> FeedResult:
    r = await http.get(feed.url)
    halts = parse_trade_halts(r.content, feed)
    return FeedResult(halts=halts, last_modified=parse_last_modified(r.headers.get("Last-Modified")))

class Ticker:
    """Fires on a fixed grid of ``interval`` seconds measured from creation.

    When the consumer falls behind, the pending tick fires at once and the
    ticks missed in between are dropped.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self.deadline = clock() + interval

    async def wait(self) -> None:
        now = self.clock()
        if now < self.deadline:
            await asyncio.sleep(self.deadline - now)
            self.deadline += self.interval
        else:
            self.deadline += self.interval * (int((now - self.deadline) // self.interval) + 1)

async def fetch_once(out: TextIO, http: Http | None = None) -> None:
    owned = http is None
    http = http or Http(config.http_config())
    try:
        result = await fetch_trade_halts(http, config.feed_config())
    finally:
        if owned:
            await http.close()
    write(out, render_table(build_snapshot(result.halts).values()))

async def run(out: TextIO, interval: float, http: Http | None = None, cycles: int | None = None,
              now: Callable[[], datetime] = datetime.now) -> Snapshot:
    """Poll the feed every ``interval`` seconds until cancelled or ``cycles`` run out.

    Any TransportError or MalformedFeedError propagates and ends the loop.
    Returns the retained snapshot state.
    """
    owned = http is None
    http = http or Http(config.http_config())
    prior: Snapshot = {}
    prev_modified: datetime | None = None
    done = 0
    try:
        ticker = Ticker(interval)
        while True:
            feed = config.feed_config()
            result = await fetch_trade_halts(http, feed)
            fetched_at = now()

            current = build_snapshot(result.halts)
            diff = diff_snapshot(current, prior)
            prior = diff.state
            for sym in diff.added:
                log.info("%s NEW %s", TAG, sym)
            for sym in diff.updated:
                log.info("%s RESUME TIME UPDATED %s -> %s", TAG, sym, prior[sym].resume_time)

            lm = result.last_modified
            if lm is not None and prev_modified is not None and lm < prev_modified:
                log.warning("%s Last-Modified went backwards: %s < %s", TAG, lm, prev_modified)
            if lm is not None:
                prev_modified = lm

            if diff.alert:
                ring_bell(out)
            write(out, render_screen(current.values(), fetched_at, lm))

            done += 1
            if cycles is not None and done >= cycles:
                return prior
            await ticker.wait()
    finally:
        if owned:
            await http.close()
