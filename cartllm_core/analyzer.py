"""
Prompt Analyzer - model-assisted choice of the final total.

One window: one call, whatever it returns. Several windows: strictly in
order, one session each, stopping at the first result that clears the
confidence threshold. Results are never combined across windows.
"""

import json
import logging
from typing import Dict, List, Optional, Sequence

from .config import config
from .llm import AVAILABLE, LanguageModel
from .preprocessor import PromptPreprocessor, SimplifiedCandidate
from .result_validator import AnalysisResult, ResultValidator
from .scanner import Candidate

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert at extracting final cart totals from e-commerce checkout pages.

KEY RULES:
- Always return JSON in exact format: {"index": number, "text": string, "amount": number, "confidence": number, "explanation": string}
- Extract ONLY the final total amount, ignore subtotals, taxes, shipping
- Convert currency strings to numbers (e.g., "$15.07" becomes 15.07)
- If uncertain, set low confidence score
- If no clear total found, return amount: null

PRIORITY ORDER for finding totals:
1. "Grand Total", "Order Total", "Final Total"
2. "Total", "Amount Due", "You Pay"
3. Last/largest price in a container with multiple prices

Always respond with valid JSON only."""

ANALYSIS_PROMPT = """Analyze these containers and find the FINAL CART TOTAL or ORDER TOTAL.

CONTAINERS TO ANALYZE:
{containers}

INSTRUCTIONS:
1. Look for keywords like: "total", "grand total", "order total", "final", "amount due", "checkout total"
2. Extract the FINAL numeric amount (not subtotals, taxes, or individual items)
3. If multiple prices exist in one container, choose the FINAL/TOTAL amount
4. Parse currency amounts like $15.07, $23.56, etc.

REQUIRED OUTPUT FORMAT (JSON only):
{{
  "index": <index_of_container_with_final_total>,
  "text": <full_text_of_that_container>,
  "amount": <numeric_value_only_no_currency_symbol>,
  "confidence": <0_to_1_score>,
  "explanation": "<brief_reason>"
}}

Return JSON only - no other text:"""


class PromptAnalyzer:
    def __init__(
        self,
        model: LanguageModel,
        preprocessor: Optional[PromptPreprocessor] = None,
        validator: Optional[ResultValidator] = None,
        confidence_threshold: Optional[float] = None,
    ):
        self.model = model
        self.preprocessor = preprocessor or PromptPreprocessor()
        self.validator = validator or ResultValidator()
        self.confidence_threshold = (
            config.confidence_threshold if confidence_threshold is None else confidence_threshold
        )
        self.calls = 0

    async def is_available(self) -> bool:
        try:
            status = await self.model.availability(language=config.language)
        except Exception as e:
            logger.info(f"Model availability check failed: {e}")
            return False
        return status == AVAILABLE

    async def analyze_price_containers(self, candidates: Sequence[Candidate]) -> Optional[AnalysisResult]:
        """Preprocess scanned candidates, then analyze the resulting windows."""
        prepared = self.preprocessor.preprocess(candidates)
        if prepared.is_empty:
            return None
        return await self.analyze(prepared.windows, prepared.original_map)

    async def analyze(
        self,
        windows: List[List[SimplifiedCandidate]],
        original_map: Dict[int, Candidate],
    ) -> Optional[AnalysisResult]:
        if not windows:
            return None
        if not await self.is_available():
            logger.info("Language model unavailable, skipping analysis")
            return None
        if len(windows) == 1:
            return await self.analyze_single_window(windows[0], original_map)
        return await self.analyze_with_windows(windows, original_map)

    async def analyze_with_windows(
        self,
        windows: List[List[SimplifiedCandidate]],
        original_map: Dict[int, Candidate],
    ) -> Optional[AnalysisResult]:
        for i, window in enumerate(windows, start=1):
            logger.debug(f"Analyzing window {i}/{len(windows)}")
            result = await self.analyze_single_window(window, original_map)
            if result and result.has_amount and result.confidence >= self.confidence_threshold:
                logger.info(f"Found high-confidence result in window {i}/{len(windows)}")
                return result

        logger.info(f"No high-confidence result in {len(windows)} windows")
        return None

    async def analyze_single_window(
        self,
        window: List[SimplifiedCandidate],
        original_map: Dict[int, Candidate],
    ) -> Optional[AnalysisResult]:
        session = None
        try:
            session = await self.create_session()
            self.calls += 1
            raw = await session.prompt(self.create_analysis_prompt(window))
        except Exception as e:
            logger.warning(f"Model call failed: {e}")
            return None
        finally:
            if session is not None:
                session.destroy()

        logger.debug(f"Model response: {(raw or '')[:500]}")
        result = self.validator.parse(raw, original_map)
        if result is None:
            logger.warning("Model response could not be used")
        return result

    async def create_session(self):
        return await self.model.create(
            system_prompt=SYSTEM_PROMPT,
            temperature=config.temperature,
            top_k=config.top_k,
            language=config.language,
        )

    @staticmethod
    def create_analysis_prompt(window: List[SimplifiedCandidate]) -> str:
        containers = json.dumps([item.to_dict() for item in window], ensure_ascii=False, indent=2)
        return ANALYSIS_PROMPT.format(containers=containers)
