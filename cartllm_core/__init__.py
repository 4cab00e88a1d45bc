"""
cartllm_core package: checkout total extraction

Usage:
    from cartllm_core import CartTotalExtractor, HtmlDocument, JsonFileStore, setup_llm

    extractor = CartTotalExtractor(store=JsonFileStore(), model=setup_llm())
    amount = await extractor.get_cart_total(HtmlDocument(html), "shop.example.com")
"""
from .config import Config, config
from .document import Document, ElementSnapshot, HtmlDocument, PlaywrightDocument, Selector
from .scanner import Candidate, CandidateScanner
from .storage import JsonFileStore, KeyValueStore, MemoryStore, StorageChange
from .selector_cache import CacheEntry, SelectorCache, cache_key
from .preprocessor import PreprocessResult, PromptPreprocessor, SimplifiedCandidate
from .llm import LanguageModel, ModelSession, OllamaLanguageModel, OpenAICompatibleLanguageModel
from .llm_config import LLMConfig
from .llm_factory import setup_llm, create_llm_client
from .result_validator import AnalysisResult, ResultValidator
from .analyzer import PromptAnalyzer
from .orchestrator import CartTotalExtractor, ExtractionReport, NavigationEvents, Strategy

__all__ = [
    # Core
    "Config",
    "config",
    "CartTotalExtractor",
    "ExtractionReport",
    "NavigationEvents",
    "Strategy",
    # Pipeline
    "Candidate",
    "CandidateScanner",
    "SelectorCache",
    "CacheEntry",
    "cache_key",
    "PromptPreprocessor",
    "PreprocessResult",
    "SimplifiedCandidate",
    "PromptAnalyzer",
    "ResultValidator",
    "AnalysisResult",
    # Collaborators
    "Document",
    "ElementSnapshot",
    "HtmlDocument",
    "PlaywrightDocument",
    "Selector",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "StorageChange",
    "LanguageModel",
    "ModelSession",
    "OllamaLanguageModel",
    "OpenAICompatibleLanguageModel",
    "LLMConfig",
    "setup_llm",
    "create_llm_client",
]
