"""
Candidate Scanner - find short text fragments that look like a checkout total.

Zero LLM: a node survives only when its visible text is short, mentions a
price keyword and carries a USD amount.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import config
from .currency import contains_price_indicators
from .document import SCAN_TAGS, Document, Selector

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    selector: Selector
    text: str
    tag: str
    id: Optional[str] = None
    class_name: Optional[str] = None


class CandidateScanner:
    """Scan a document for price-like containers."""

    def __init__(self, max_text_length: Optional[int] = None, tags=SCAN_TAGS):
        self.max_text_length = config.max_text_length if max_text_length is None else max_text_length
        self.tags = tuple(tags)

    async def scan(self, document: Document) -> List[Candidate]:
        try:
            elements = await document.elements(self.tags)
        except Exception as e:
            logger.warning(f"Could not walk document: {e}")
            return []

        candidates = []
        for element in elements:
            text = (element.text or "").strip()
            # Skip containers that wrap half the page
            if len(text) > self.max_text_length:
                continue
            if not contains_price_indicators(text):
                continue
            candidates.append(Candidate(
                selector=element.to_selector(),
                text=text,
                tag=element.tag_name,
                id=element.id,
                class_name=element.class_name,
            ))

        logger.debug(f"Found {len(candidates)} potential price containers")
        return candidates
