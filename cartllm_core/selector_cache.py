"""
Selector Cache - per-site memory of the locators that resolved a total.

Entries live in a ``KeyValueStore`` under ``price_selectors_<domain>`` and
expire lazily: an entry older than the TTL is removed the next time it is
read. A cached selector that no longer resolves is a miss, not a reason to
evict.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .config import config
from .currency import extract_amount
from .document import Document, Selector
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "price_selectors_"


def now_ms() -> int:
    return int(time.time() * 1000)


def cache_key(domain: str) -> str:
    return CACHE_KEY_PREFIX + re.sub(r"[^a-zA-Z0-9]", "_", domain or "")


@dataclass
class CacheEntry:
    domain: str
    selectors: List[Selector] = field(default_factory=list)
    timestamp: int = 0
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "selectors": [s.to_dict() for s in self.selectors],
            "timestamp": self.timestamp,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        raw_selectors = data.get("selectors") or []
        if not isinstance(raw_selectors, list) or not all(isinstance(s, dict) for s in raw_selectors):
            raise ValueError(f"selectors must be a list of objects, got {raw_selectors!r}")
        return cls(
            domain=str(data["domain"]),
            selectors=[Selector.from_dict(s) for s in raw_selectors],
            timestamp=int(data["timestamp"]),
            version=int(data.get("version", 1)),
        )


class SelectorCache:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.ttl_ms = config.cache_ttl_ms if ttl_ms is None else ttl_ms
        self.clock = clock

    async def _read_entry(self, key: str, evict_malformed: bool = False) -> Optional[CacheEntry]:
        raw = (await self.store.get([key])).get(key)
        if not raw:
            return None
        try:
            return CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring malformed cache entry {key}: {e}")
            if evict_malformed:
                await self.store.remove([key])
            return None

    async def get(self, domain: str) -> Optional[List[Selector]]:
        key = cache_key(domain)
        entry = await self._read_entry(key, evict_malformed=True)
        if entry is None:
            return None

        if self.clock() - entry.timestamp > self.ttl_ms:
            logger.debug(f"Cache for {domain} expired, evicting")
            await self.store.remove([key])
            return None

        return entry.selectors

    async def put(self, domain: str, selectors: List[Selector]) -> CacheEntry:
        key = cache_key(domain)
        previous = await self._read_entry(key)
        entry = CacheEntry(
            domain=domain,
            selectors=list(selectors),
            timestamp=self.clock(),
            version=previous.version + 1 if previous else 1,
        )
        await self.store.set({key: entry.to_dict()})
        logger.debug(f"Cached {len(entry.selectors)} selector(s) for {domain}")
        return entry

    async def clear(self, domain: str) -> None:
        await self.store.remove([cache_key(domain)])

    async def resolve(self, document: Document, selectors: List[Selector]) -> Optional[float]:
        """Try cached selectors in order; first plausible amount wins."""
        for selector in selectors:
            try:
                element = await document.resolve(selector)
            except Exception as e:
                logger.warning(f"Cached selector {selector.selector!r} failed: {e}")
                continue
            if element is None:
                continue
            amount = extract_amount(element.text)
            if amount is not None:
                logger.info(f"Found price using cached selector: ${amount}")
                return amount
        return None
