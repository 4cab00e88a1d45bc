"""
Prompt Preprocessor - shrink scanned candidates into model-sized windows.

Candidates are reduced to ``{"index", "text"}``, deduplicated on normalized
text, sorted shortest first and, when the whole list does not fit the
character budget, packed greedily into contiguous windows.
"""

import json
import logging
from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional, Sequence

from .config import config
from .scanner import Candidate

logger = logging.getLogger(__name__)


@dataclass
class SimplifiedCandidate:
    index: int
    text: str

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class PreprocessResult:
    simplified: List[SimplifiedCandidate]
    original_map: Dict[int, Candidate]
    windows: List[List[SimplifiedCandidate]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.simplified


def serialize(data) -> str:
    """Compact JSON, the form the budget is measured in."""
    if isinstance(data, SimplifiedCandidate):
        data = data.to_dict()
    elif isinstance(data, (list, tuple)):
        data = [d.to_dict() if isinstance(d, SimplifiedCandidate) else d for d in data]
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def serialized_size(data) -> int:
    return len(serialize(data))


class PromptPreprocessor:
    def __init__(self, max_chars: Optional[int] = None):
        self.max_chars = config.max_chars if max_chars is None else max_chars

    def preprocess(self, candidates: Sequence[Candidate]) -> PreprocessResult:
        simplified = [
            SimplifiedCandidate(index=i, text=c.text)
            for i, c in enumerate(candidates)
        ]
        deduped = self.remove_duplicate_text(simplified)
        ordered = self.sort_by_text_length(deduped)
        original_map = self.create_original_map(candidates, ordered)

        if not ordered:
            windows = []
        elif self.fits_in_limit(ordered):
            windows = [ordered]
        else:
            windows = self.create_windows(ordered)

        logger.debug(
            f"Preprocessed: {len(candidates)} → {len(ordered)} unique containers, "
            f"{len(windows)} window(s)"
        )
        return PreprocessResult(simplified=ordered, original_map=original_map, windows=windows)

    @staticmethod
    def remove_duplicate_text(items: Sequence[SimplifiedCandidate]) -> List[SimplifiedCandidate]:
        seen = set()
        unique = []
        for item in items:
            normalized = item.text.lower().strip()
            if normalized in seen:
                continue
            seen.add(normalized)
            unique.append(item)
        return unique

    @staticmethod
    def sort_by_text_length(items: Sequence[SimplifiedCandidate]) -> List[SimplifiedCandidate]:
        # sorted() is stable: equal lengths keep document order
        return sorted(items, key=lambda item: len(item.text))

    @staticmethod
    def create_original_map(
        candidates: Sequence[Candidate],
        simplified: Sequence[SimplifiedCandidate],
    ) -> Dict[int, Candidate]:
        original_map = {}
        for item in simplified:
            if 0 <= item.index < len(candidates):
                original_map[item.index] = candidates[item.index]
        return original_map

    def fits_in_limit(self, data) -> bool:
        return serialized_size(data) <= self.max_chars

    def create_windows(self, items: Sequence[SimplifiedCandidate]) -> List[List[SimplifiedCandidate]]:
        """
        Greedy packing in the given order.

        A window is closed when the next item would push it past
        ``max_chars``; an item larger than the budget on its own still gets
        a window of its own.
        """
        windows: List[List[SimplifiedCandidate]] = []
        current: List[SimplifiedCandidate] = []
        current_size = 0

        for item in items:
            item_size = serialized_size(item)
            if current and current_size + item_size > self.max_chars:
                windows.append(current)
                current = []
                current_size = 0
            current.append(item)
            current_size += item_size

        if current:
            windows.append(current)

        logger.debug(f"Created {len(windows)} windows for model processing")
        return windows
