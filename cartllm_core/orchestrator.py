"""
Cart Total Extractor - the ``get_cart_total`` entry point.

Strategies run in a fixed order with explicit fallthrough:

1. CACHE_HIT       - cached selectors for the domain resolve to a price
2. HEURISTIC_SCAN  - scan and preprocess candidates (no candidates: stop)
3. MODEL_WINDOWS   - model picks the total; selectors are cached on success

Every pass captures the navigation epoch when it starts. If the page
navigates before the pass finishes, its result is dropped instead of being
cached or returned.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .analyzer import PromptAnalyzer
from .document import Document
from .llm import LanguageModel
from .preprocessor import PreprocessResult, PromptPreprocessor
from .result_validator import AnalysisResult
from .scanner import Candidate, CandidateScanner
from .selector_cache import SelectorCache
from .storage import KeyValueStore, MemoryStore

logger = logging.getLogger(__name__)


class Strategy(Enum):
    CACHE_HIT = "cache_hit"
    HEURISTIC_SCAN = "heuristic_scan"
    MODEL_WINDOWS = "model_windows"


class Outcome(Enum):
    CONTINUE = "continue"   # fall through to the next strategy
    ANSWERED = "answered"
    EXHAUSTED = "exhausted"  # nothing further can help


@dataclass
class ExtractionReport:
    domain: str
    amount: Optional[float] = None
    strategy: Optional[Strategy] = None
    candidates: int = 0
    unique_candidates: int = 0
    windows: int = 0
    model_calls: int = 0
    result: Optional[AnalysisResult] = None
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "amount": self.amount,
            "strategy": self.strategy.value if self.strategy else None,
            "candidates": self.candidates,
            "unique_candidates": self.unique_candidates,
            "windows": self.windows,
            "model_calls": self.model_calls,
            "result": self.result.to_dict() if self.result else None,
            "stale": self.stale,
        }


@dataclass
class _Pass:
    document: Document
    domain: str
    epoch: int
    report: ExtractionReport
    candidates: List[Candidate] = field(default_factory=list)
    prepared: Optional[PreprocessResult] = None


class NavigationEvents:
    """Minimal "navigation changed" event source."""

    def __init__(self):
        self._subscribers: List[Callable[[str], None]] = []

    def subscribe(self, callback: Callable[[str], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[str], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def emit(self, url: str = "") -> None:
        for callback in list(self._subscribers):
            callback(url)


class CartTotalExtractor:
    """
    One extractor per page lifetime.

    Args:
        store: key/value store backing the selector cache
        model: language model capability; None disables the model strategy
        cache: prebuilt SelectorCache (overrides ``store``)
        analyzer: prebuilt PromptAnalyzer (overrides ``model``)
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        model: Optional[LanguageModel] = None,
        cache: Optional[SelectorCache] = None,
        scanner: Optional[CandidateScanner] = None,
        preprocessor: Optional[PromptPreprocessor] = None,
        analyzer: Optional[PromptAnalyzer] = None,
    ):
        self.cache = cache or SelectorCache(store if store is not None else MemoryStore())
        self.scanner = scanner or CandidateScanner()
        self.preprocessor = preprocessor or PromptPreprocessor()
        if analyzer is None and model is not None:
            analyzer = PromptAnalyzer(model, preprocessor=self.preprocessor)
        self.analyzer = analyzer
        self.epoch = 0
        self.strategies = [
            (Strategy.CACHE_HIT, self._try_cache),
            (Strategy.HEURISTIC_SCAN, self._scan),
            (Strategy.MODEL_WINDOWS, self._ask_model),
        ]

    def attach(self, events: NavigationEvents) -> None:
        events.subscribe(self.navigation_changed)

    def navigation_changed(self, url: str = "") -> None:
        self.epoch += 1
        logger.debug(f"Navigation to {url or '<unknown>'}, epoch {self.epoch}")

    async def get_cart_total(self, document: Document, domain: str) -> Optional[float]:
        report = await self.extract(document, domain)
        return report.amount

    async def extract(self, document: Document, domain: str) -> ExtractionReport:
        state = _Pass(document, domain, self.epoch, ExtractionReport(domain=domain))
        try:
            for strategy, run in self.strategies:
                outcome = await run(state)
                logger.debug(f"{strategy.value}: {outcome.value}")
                if outcome is Outcome.ANSWERED:
                    state.report.strategy = strategy
                    break
                if outcome is Outcome.EXHAUSTED:
                    break
        except Exception as e:
            logger.error(f"Price extraction failed for {domain}: {e}")
            state.report.amount = None
            state.report.strategy = None

        if state.report.amount is None:
            logger.info(f"Could not extract price for {domain}")
        return state.report

    def _is_stale(self, state: _Pass) -> bool:
        if state.epoch != self.epoch:
            logger.info(f"Page navigated during extraction for {state.domain}, dropping result")
            state.report.stale = True
            return True
        return False

    async def _try_cache(self, state: _Pass) -> Outcome:
        try:
            selectors = await self.cache.get(state.domain)
            if not selectors:
                return Outcome.CONTINUE
            amount = await self.cache.resolve(state.document, selectors)
        except Exception as e:
            logger.warning(f"Selector cache unusable for {state.domain}: {e}")
            return Outcome.CONTINUE
        if amount is None or self._is_stale(state):
            return Outcome.CONTINUE
        state.report.amount = amount
        return Outcome.ANSWERED

    async def _scan(self, state: _Pass) -> Outcome:
        state.candidates = await self.scanner.scan(state.document)
        state.report.candidates = len(state.candidates)
        if not state.candidates:
            logger.info("No price containers found")
            return Outcome.EXHAUSTED

        state.prepared = self.preprocessor.preprocess(state.candidates)
        state.report.unique_candidates = len(state.prepared.simplified)
        state.report.windows = len(state.prepared.windows)
        if state.prepared.is_empty:
            return Outcome.EXHAUSTED
        return Outcome.CONTINUE

    async def _ask_model(self, state: _Pass) -> Outcome:
        if self.analyzer is None or state.prepared is None:
            return Outcome.EXHAUSTED

        calls_before = self.analyzer.calls
        result = await self.analyzer.analyze(state.prepared.windows, state.prepared.original_map)
        state.report.model_calls = self.analyzer.calls - calls_before
        state.report.result = result

        if result is None or not result.has_amount:
            return Outcome.EXHAUSTED
        if self._is_stale(state):
            return Outcome.EXHAUSTED

        logger.info(f"Model found price: {result.amount}")
        try:
            await self.cache.put(state.domain, result.selectors)
        except Exception as e:
            logger.warning(f"Could not cache selectors for {state.domain}: {e}")
        state.report.amount = result.amount
        return Outcome.ANSWERED
