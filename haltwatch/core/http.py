import random, asyncio, logging
from typing import Optional, Dict
import httpx

from .config import HttpConfig
from .errors import TransportError

log = logging.getLogger(__name__)

def _jitter(base: float) -> float:
    return base * (0.9 + random.random()*0.2)

class Http:
    def __init__(self, cfg: HttpConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg or HttpConfig()
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.cfg.timeout, connect=self.cfg.connect_timeout),
            follow_redirects=True,
            headers={"User-Agent": self.cfg.user_agent},
            transport=transport,
        )

    async def get(self, url: str, headers: Optional[Dict[str,str]]=None) -> httpx.Response:
        """GET ``url``; only 200 is accepted, anything else raises TransportError."""
        backoff = 0.4
        last_exc: Exception | None = None
        for attempt in range(self.cfg.retries):
            if attempt:
                await asyncio.sleep(_jitter(backoff)); backoff = min(backoff*2, 6.4)
            try:
                r = await self.client.get(url, headers=headers)
            except httpx.HTTPError as e:
                log.debug("GET %s failed (attempt %d): %s", url, attempt + 1, e)
                last_exc = TransportError(f"failed to fetch {url}: {e}")
                continue
            if r.status_code != 200:
                last_exc = TransportError(f"bad status code: {r.status_code}")
                continue
            return r
        raise last_exc or TransportError(f"failed to fetch {url}")

    async def close(self):
        await self.client.aclose()
