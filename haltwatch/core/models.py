from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TradeHalt:
    symbol: str
    name: str
    exchange: str
    reason: str
    halt_time: datetime | None = None
    resume_time: datetime | None = None
