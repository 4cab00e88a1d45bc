"""
Result Validator - turn an untrusted model reply into an AnalysisResult.

The reply is free text that should contain one JSON object
``{index, text, amount, confidence, explanation}``. Anything that cannot be
parsed, references an index we never sent, or carries a non-numeric amount
yields None. Nothing in here raises to the caller.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .currency import coerce_amount
from .document import Selector
from .scanner import Candidate

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_EXPLANATION = "Model analysis"


@dataclass
class AnalysisResult:
    amount: Optional[float]
    confidence: float
    explanation: str
    selectors: List[Selector] = field(default_factory=list)
    index: Optional[int] = None
    text: str = ""

    @property
    def has_amount(self) -> bool:
        return self.amount is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "confidence": self.confidence,
            "explanation": self.explanation,
            "selectors": [s.to_dict() for s in self.selectors],
            "index": self.index,
            "text": self.text,
        }


def _strip_fences(s: str) -> str:
    s = s.strip()
    if s.startswith("```"):
        s = s.split("\n", 1)[1] if "\n" in s else s
        if s.rstrip().endswith("```"):
            s = s.rsplit("```", 1)[0]
    return s.strip()


def extract_json_object(text: str) -> Optional[str]:
    """First balanced ``{...}`` in text, ignoring braces inside strings."""
    start = -1
    depth = 0
    in_str = False
    esc = False
    for i, ch in enumerate(text):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"' and depth > 0:
            in_str = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start: i + 1]
    return None


def _coerce_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _coerce_confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(confidence):
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


class ResultValidator:
    def parse(self, raw: Optional[str], original_map: Dict[int, Candidate]) -> Optional[AnalysisResult]:
        try:
            return self._parse(raw or "", original_map)
        except Exception as e:
            logger.warning(f"Failed to parse model result: {e}")
            return None

    def _parse(self, raw: str, original_map: Dict[int, Candidate]) -> Optional[AnalysisResult]:
        snippet = extract_json_object(_strip_fences(raw))
        if snippet is None:
            logger.debug("No JSON object in model response")
            return None

        response = json.loads(snippet)
        if not isinstance(response, dict):
            return None
        if "amount" not in response or "index" not in response:
            return None

        index = _coerce_index(response["index"])
        original = original_map.get(index) if index is not None else None
        if original is None:
            logger.debug(f"Model referenced unknown index {response['index']!r}")
            return None

        amount = None
        if response["amount"] is not None:
            amount = coerce_amount(response["amount"])
            if amount is None:
                logger.debug(f"Rejected non-numeric amount {response['amount']!r}")
                return None

        explanation = response.get("explanation")
        return AnalysisResult(
            amount=amount,
            confidence=_coerce_confidence(response.get("confidence")),
            explanation=str(explanation) if explanation else DEFAULT_EXPLANATION,
            selectors=[original.selector],
            index=index,
            text=original.text,
        )
