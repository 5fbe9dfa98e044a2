"""
Tests for the halt CSV parser.
"""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from haltwatch.core.config import FeedConfig
from haltwatch.core.errors import MalformedFeedError
from haltwatch.watchers.halts import parse_last_modified, parse_trade_halts, try_unquote

from .utils.feeds import HEADER, feed_body

NY = ZoneInfo("America/New_York")


class TestParseTradeHalts:
    """Row handling and record construction."""

    def test_single_row(self):
        body = feed_body("2026-10-19,09:45:12,AAPL,Apple Inc.,NASDAQ,LULD pause,2026-10-19,09:50:12")
        halts = parse_trade_halts(body, FeedConfig())

        assert len(halts) == 1
        h = halts[0]
        assert h.symbol == "AAPL"
        assert h.name == "Apple Inc."
        assert h.exchange == "NASDAQ"
        assert h.reason == "LULD pause"
        assert h.halt_time == datetime(2026, 10, 19, 9, 45, 12, tzinfo=NY)
        assert h.resume_time == datetime(2026, 10, 19, 9, 50, 12, tzinfo=NY)

    def test_rows_keep_feed_order(self):
        body = feed_body(
            "2026-10-19,09:45:12,TSLA,Tesla,NASDAQ,News pending,,",
            "2026-10-19,09:46:00,AAPL,Apple,NASDAQ,News pending,,",
        )
        assert [h.symbol for h in parse_trade_halts(body)] == ["TSLA", "AAPL"]

    @pytest.mark.parametrize("data", [b"", HEADER.encode(), (HEADER + "\n").encode(), b"\n\n"])
    def test_header_only_or_empty_is_empty(self, data):
        assert parse_trade_halts(data, FeedConfig()) == []

    @pytest.mark.parametrize("row", [
        "2026-10-19,09:45:12,AAPL,Apple,NASDAQ,LULD,2026-10-19",             # 7 fields
        "2026-10-19,09:45:12,AAPL,Apple,NASDAQ,LULD,2026-10-19,09:50:12,X",  # 9 fields
        "AAPL",
    ])
    def test_wrong_field_count_is_fatal(self, row):
        body = feed_body("2026-10-19,09:45:12,TSLA,Tesla,NASDAQ,LULD,,", row)
        with pytest.raises(MalformedFeedError, match="row 3"):
            parse_trade_halts(body, FeedConfig())

    def test_blank_lines_are_ignored(self):
        body = (HEADER + "\n\n2026-10-19,09:45:12,AAPL,Apple,NASDAQ,LULD,,\n\n").encode()
        assert [h.symbol for h in parse_trade_halts(body)] == ["AAPL"]

    def test_byte_order_mark_is_stripped(self):
        cfg = FeedConfig(header=tuple(HEADER.split(",")))
        body = b"\xef\xbb\xbf" + feed_body("2026-10-19,09:45:12,AAPL,Apple,NASDAQ,LULD,,")
        assert len(parse_trade_halts(body, cfg)) == 1

    def test_undecodable_body_is_malformed(self):
        with pytest.raises(MalformedFeedError):
            parse_trade_halts(HEADER.encode() + b"\n\xff\xfe,bad\n")

    def test_duplicate_symbols_are_all_returned(self):
        body = feed_body(
            "2026-10-19,09:45:12,AAPL,Apple,NASDAQ,LULD,,",
            "2026-10-19,10:45:12,AAPL,Apple,NASDAQ,News pending,,",
        )
        assert [h.reason for h in parse_trade_halts(body)] == ["LULD", "News pending"]


class TestTimestamps:
    """Halt and resume timestamp handling."""

    def test_empty_date_and_time_are_absent(self):
        halts = parse_trade_halts(feed_body(",,AAPL,Apple,NASDAQ,LULD,,"))
        assert halts[0].halt_time is None
        assert halts[0].resume_time is None

    @pytest.mark.parametrize("date,time", [("2026-10-19", ""), ("", "09:45:12")])
    def test_half_missing_is_absent_without_warning(self, date, time, caplog):
        with caplog.at_level(logging.WARNING):
            halts = parse_trade_halts(feed_body(f"{date},{time},AAPL,Apple,NASDAQ,LULD,,"))
        assert halts[0].halt_time is None
        assert caplog.records == []

    def test_unparsable_time_is_warned_and_absent(self, caplog):
        body = feed_body(
            "10/19/2026,09:45:12,AAPL,Apple,NASDAQ,LULD,2026-10-19,25:61:00",
            "2026-10-19,09:46:00,TSLA,Tesla,NASDAQ,LULD,,",
        )
        with caplog.at_level(logging.WARNING, logger="haltwatch"):
            halts = parse_trade_halts(body)

        assert len(halts) == 2
        assert halts[0].halt_time is None
        assert halts[0].resume_time is None
        assert halts[1].halt_time == datetime(2026, 10, 19, 9, 46, tzinfo=NY)
        messages = [r.getMessage() for r in caplog.records]
        assert any("halt datetime for AAPL" in m for m in messages)
        assert any("resume datetime for AAPL" in m for m in messages)

    @pytest.mark.parametrize("date,time", [
        ("2026-1-5", "09:45:12"),
        ("26-10-19", "09:45:12"),
        ("2026-10-19", "09:45"),
        ("2026-10-19", "09:5:12"),
        ("2026-02-30", "09:45:12"),
        ("2026-10-19", "09:45:12pm"),
        ("２０２６-10-19", "09:45:12"),
    ])
    def test_loose_formats_are_rejected(self, date, time, caplog):
        with caplog.at_level(logging.WARNING, logger="haltwatch"):
            halts = parse_trade_halts(feed_body(f"{date},{time},AAPL,Apple,NASDAQ,LULD,,"))
        assert halts[0].halt_time is None
        assert "halt datetime for AAPL" in caplog.text

    @pytest.mark.parametrize("time,expected", [
        ("09:45:12.5", datetime(2026, 10, 19, 9, 45, 12, 500000, tzinfo=NY)),
        ("09:45:12,25", datetime(2026, 10, 19, 9, 45, 12, 250000, tzinfo=NY)),
        ("09:45:12.123456789", datetime(2026, 10, 19, 9, 45, 12, 123456, tzinfo=NY)),
        ("9:45:12", datetime(2026, 10, 19, 9, 45, 12, tzinfo=NY)),
    ])
    def test_fractional_seconds_and_short_hour(self, time, expected):
        halts = parse_trade_halts(feed_body(f'2026-10-19,"{time}",AAPL,Apple,NASDAQ,LULD,,'))
        assert halts[0].halt_time == expected

    def test_zone_comes_from_config(self):
        cfg = FeedConfig(tz=ZoneInfo("Europe/London"))
        halts = parse_trade_halts(feed_body("2026-10-19,09:45:12,AAPL,Apple,LSE,LULD,,"), cfg)
        assert halts[0].halt_time.utcoffset() == ZoneInfo("Europe/London").utcoffset(datetime(2026, 10, 19, 9, 45))


class TestNames:

    def test_quoted_name_is_unescaped(self):
        body = feed_body('2026-10-19,09:45:12,ACME,"""Acme \\u0026 Sons, Inc.""",NYSE,LULD,,')
        assert parse_trade_halts(body)[0].name == "Acme & Sons, Inc."

    @pytest.mark.parametrize("raw,expected", [
        ('"Acme\\tCorp"', "Acme\tCorp"),
        ("`Acme \\n Corp`", "Acme \\n Corp"),
        ('"a"b"', '"a"b"'),
        ('"', '"'),
        ("Plain Name", "Plain Name"),
        ("", ""),
        ('"Acme" "Corp"', '"Acme" "Corp"'),
        ('"""Acme"""', '"""Acme"""'),
        ('"Acme \\q Corp"', '"Acme \\q Corp"'),
        ("'A'", "A"),
        ("'AB'", "'AB'"),
        ('"caf\\xc3\\xa9"', "caf\u00e9"),
        ('"\\101\\u00e9\\U0001F600"', "A\u00e9\U0001F600"),
        ("\"it\\'s\"", "\"it\\'s\""),
        ('"\\ud800"', '"\\ud800"'),
        ('"tail\\"', '"tail\\"'),
    ])
    def test_try_unquote(self, raw, expected):
        assert try_unquote(raw) == expected

    def test_try_unquote_emits_no_warnings(self, recwarn):
        try_unquote('"Acme \\q Corp"')
        assert len(recwarn) == 0


class TestLayout:
    """Configured column layout and header checks."""

    def test_custom_column_mapping(self):
        cfg = FeedConfig.from_dict({"columns": {
            "symbol": 0, "name": 1, "halt_date": 2, "halt_time": 3,
            "exchange": 4, "reason": 5, "resume_date": 6, "resume_time": 7,
        }})
        body = b"h\nAAPL,Apple,2026-10-19,09:45:12,NASDAQ,LULD,,\n"
        h = parse_trade_halts(body, cfg)[0]
        assert h.symbol == "AAPL"
        assert h.name == "Apple"
        assert h.halt_time == datetime(2026, 10, 19, 9, 45, 12, tzinfo=NY)

    def test_matching_header_passes(self):
        cfg = FeedConfig.from_dict({"header": [f" {h} " for h in HEADER.split(",")]})
        assert len(parse_trade_halts(feed_body(",,AAPL,Apple,NASDAQ,LULD,,"), cfg)) == 1

    def test_changed_header_is_rejected(self):
        cfg = FeedConfig.from_dict({"header": HEADER.split(",")})
        body = b"Symbol,Name,Halt Date,Halt Time,Exchange,Reason,Resume Date,Resume Time\n,,,,,,,\n"
        with pytest.raises(MalformedFeedError, match="header"):
            parse_trade_halts(body, cfg)


class TestLastModified:

    def test_rfc1123(self):
        assert parse_last_modified("Mon, 19 Oct 2026 14:30:00 GMT") == datetime(
            2026, 10, 19, 10, 30, tzinfo=NY
        )

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_missing_or_bad_is_none(self, value, caplog):
        with caplog.at_level(logging.WARNING, logger="haltwatch"):
            assert parse_last_modified(value) is None
        assert caplog.records
