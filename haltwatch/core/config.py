import os, yaml
from dataclasses import dataclass, field
from typing import Any, Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

NYSE_TRADE_HALT_URL = "https://www.nyse.com/api/trade-halts/current/download"
DEFAULT_CFG_PATH = "config/haltwatch.yaml"

# column name -> index in a data row
DEFAULT_COLUMNS = {
    "halt_date": 0,
    "halt_time": 1,
    "symbol": 2,
    "name": 3,
    "exchange": 4,
    "reason": 5,
    "resume_date": 6,
    "resume_time": 7,
}

_cache: Dict[str, Any] | None = None
_cache_mtime: float | None = None
_cfg_path: str | None = None


@dataclass(frozen=True)
class FeedConfig:
    url: str = NYSE_TRADE_HALT_URL
    tz: ZoneInfo = field(default_factory=lambda: ZoneInfo("America/New_York"))
    field_count: int = 8
    columns: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_COLUMNS))
    header: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any] | None) -> "FeedConfig":
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("'feed' must be a mapping")

        url = raw.get("url", NYSE_TRADE_HALT_URL)
        if not isinstance(url, str) or not url:
            raise ConfigError("feed.url must be a non-empty string")

        tz_name = raw.get("timezone", "America/New_York")
        try:
            tz = ZoneInfo(str(tz_name))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"unknown time zone {tz_name!r}") from e

        field_count = raw.get("field_count", 8)
        if isinstance(field_count, bool) or not isinstance(field_count, int) or field_count < 1:
            raise ConfigError("feed.field_count must be a positive integer")

        columns = dict(DEFAULT_COLUMNS)
        overrides = raw.get("columns") or {}
        if not isinstance(overrides, dict):
            raise ConfigError("feed.columns must be a mapping")
        for name, idx in overrides.items():
            if name not in DEFAULT_COLUMNS:
                raise ConfigError(f"unknown feed column {name!r}")
            columns[name] = idx
        for name, idx in columns.items():
            if isinstance(idx, bool) or not isinstance(idx, int) or not 0 <= idx < field_count:
                raise ConfigError(f"feed column {name!r} index {idx!r} outside 0..{field_count - 1}")
        if len(set(columns.values())) != len(columns):
            raise ConfigError("feed columns must not share an index")

        header = raw.get("header")
        if header is not None:
            if not isinstance(header, list) or len(header) != field_count:
                raise ConfigError(f"feed.header must list exactly {field_count} titles")
            header = tuple(str(h).strip() for h in header)

        return cls(url=url, tz=tz, field_count=field_count, columns=columns, header=header)


@dataclass(frozen=True)
class HttpConfig:
    timeout: float = 10.0
    connect_timeout: float = 5.0
    retries: int = 1
    user_agent: str = "haltwatch/0.1"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any] | None) -> "HttpConfig":
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("'http' must be a mapping")
        try:
            timeout = float(raw.get("timeout", 10.0))
            connect_timeout = float(raw.get("connect_timeout", 5.0))
            retries = int(raw.get("retries", 1))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid http setting: {e}") from e
        if timeout <= 0 or connect_timeout <= 0:
            raise ConfigError("http timeouts must be positive")
        if retries < 1:
            raise ConfigError("http.retries must be at least 1")
        return cls(
            timeout=timeout,
            connect_timeout=connect_timeout,
            retries=retries,
            user_agent=str(raw.get("user_agent", "haltwatch/0.1")),
        )


def default_path() -> str:
    return os.getenv("HALTWATCH_CONFIG", DEFAULT_CFG_PATH)

def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must contain a mapping")
    return data

def configure(path: str | None) -> None:
    global _cfg_path, _cache_mtime
    _cfg_path = path
    _cache_mtime = None
    _reload(force=True)

def _reload(force: bool = False) -> None:
    global _cache, _cache_mtime
    if _cfg_path is None:
        _cache, _cache_mtime = {}, None
        return
    try:
        mtime = os.path.getmtime(_cfg_path)
    except OSError:
        mtime = None
    if not force and mtime == _cache_mtime and _cache is not None:
        return
    _cache = _read_yaml(_cfg_path)
    _cache_mtime = mtime

def get_config() -> Dict[str, Any]:
    _reload()
    return _cache or {}

def feed_config() -> FeedConfig:
    return FeedConfig.from_dict(get_config().get("feed"))

def http_config() -> HttpConfig:
    return HttpConfig.from_dict(get_config().get("http"))
