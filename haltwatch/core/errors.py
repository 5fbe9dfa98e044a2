class HaltWatchError(Exception):
    """Base class for every fatal condition the CLI reports."""


class TransportError(HaltWatchError):
    """Connection failure or a non-200 response from the feed."""


class MalformedFeedError(HaltWatchError):
    """CSV body that cannot be parsed or has rows of the wrong width."""


class ConfigError(HaltWatchError):
    """Invalid or unreadable configuration."""
