#!/usr/bin/env python3
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# 7 days in milliseconds
DEFAULT_CACHE_TTL_MS = 7 * 24 * 60 * 60 * 1000


@dataclass
class Config:
    """Application configuration"""
    # Extraction pipeline
    cache_ttl_ms: int = int(os.getenv("CARTLLM_CACHE_TTL_MS", str(DEFAULT_CACHE_TTL_MS)))
    max_chars: int = int(os.getenv("CARTLLM_MAX_CHARS", "2000"))
    confidence_threshold: float = float(os.getenv("CARTLLM_CONFIDENCE_THRESHOLD", "0.7"))
    min_amount: float = float(os.getenv("CARTLLM_MIN_AMOUNT", "0"))
    max_amount: float = float(os.getenv("CARTLLM_MAX_AMOUNT", "100000"))
    max_text_length: int = int(os.getenv("CARTLLM_MAX_TEXT_LENGTH", "100"))

    # Model backend
    ollama_host: str = os.getenv("CARTLLM_OLLAMA_HOST", "http://localhost:11434")
    ollama_model: str = os.getenv("CARTLLM_MODEL", "qwen2.5:7b")
    llm_provider: Optional[str] = os.getenv("CARTLLM_LLM_PROVIDER") or None
    temperature: float = float(os.getenv("CARTLLM_TEMPERATURE", "0.1"))
    top_k: int = int(os.getenv("CARTLLM_TOP_K", "1"))
    language: str = os.getenv("CARTLLM_LANGUAGE", "en")
    num_predict: int = int(os.getenv("CARTLLM_NUM_PREDICT", "256"))
    llm_timeout: int = int(os.getenv("CARTLLM_LLM_TIMEOUT", "120"))

    # Storage / runtime
    workspace: Path = Path(os.getenv("CARTLLM_WORKSPACE", "./workspace"))
    headless: bool = os.getenv("CARTLLM_HEADLESS", "true").lower() == "true"
    log_level: str = os.getenv("CARTLLM_LOG_LEVEL", "INFO")

config = Config()
