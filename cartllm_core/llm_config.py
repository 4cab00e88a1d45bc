#!/usr/bin/env python3
"""
LLMConfig - Model Backend Configuration

Supports:
- ollama/model_name (default, local)
- openai/gpt-4o-mini and other OpenAI-compatible endpoints
  (groq/..., deepseek/..., openrouter/...)

Usage:
    llm_config = LLMConfig(provider="ollama/qwen2.5:7b")
    llm_config = LLMConfig(provider="openai/gpt-4o-mini", api_token="env:OPENAI_API_KEY")
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from .config import config


PROVIDER_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "ollama": None,  # Ollama doesn't need API key
}

PROVIDER_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "deepseek": "https://api.deepseek.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
    "ollama": "http://localhost:11434",
}

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "groq": "llama3-8b-8192",
    "deepseek": "deepseek-chat",
    "openrouter": "openai/gpt-4o-mini",
    "ollama": "qwen2.5:7b",
}


@dataclass
class LLMConfig:
    """
    Model backend configuration.

    Parameters:
        provider: Format "provider/model" e.g. "ollama/qwen2.5:7b", "openai/gpt-4o-mini"
        api_token: Optional. If not provided, read from the provider's environment
                   variable. "env:VAR_NAME" names a custom variable.
        base_url: Optional custom endpoint.
        temperature: Default sampling temperature for new sessions
        top_k: Default top-k for new sessions
        max_tokens: Maximum tokens to generate
        timeout: Request timeout in seconds
        extra_params: Extra backend options (Ollama "options", OpenAI payload keys)
    """
    provider: str = "ollama/qwen2.5:7b"
    api_token: Optional[str] = None
    base_url: Optional[str] = None
    temperature: float = 0.1
    top_k: int = 1
    max_tokens: int = 256
    timeout: int = 120
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        parts = self.provider.split("/", 1)
        self._provider_name = parts[0].lower()
        self._model_name = parts[1] if len(parts) > 1 else DEFAULT_MODELS.get(self._provider_name, "")
        self._resolved_token = self._resolve_api_token()
        if self.base_url is None:
            self.base_url = PROVIDER_BASE_URLS.get(self._provider_name, PROVIDER_BASE_URLS["ollama"])

    def _resolve_api_token(self) -> Optional[str]:
        if self.api_token is None:
            env_var = PROVIDER_ENV_VARS.get(self._provider_name)
            return os.getenv(env_var) if env_var else None
        if self.api_token.startswith("env:"):
            return os.getenv(self.api_token[4:].strip())
        return self.api_token

    @property
    def provider_name(self) -> str:
        return self._provider_name

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def resolved_api_token(self) -> Optional[str]:
        return self._resolved_token

    @property
    def is_local(self) -> bool:
        return self._provider_name == "ollama"

    def validate(self) -> bool:
        if not self.is_local and not self._resolved_token:
            env_var = PROVIDER_ENV_VARS.get(self._provider_name, "unknown")
            raise ValueError(
                f"API token required for {self._provider_name}. "
                f"Set api_token or {env_var} environment variable."
            )
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "provider_name": self._provider_name,
            "model_name": self._model_name,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "top_k": self.top_k,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            "has_api_token": self._resolved_token is not None,
            "is_local": self.is_local,
        }

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Build from the loaded ``config`` (CARTLLM_* variables)."""
        provider = config.llm_provider or f"ollama/{config.ollama_model}"
        base_url = config.ollama_host if provider.startswith("ollama/") else os.getenv("CARTLLM_LLM_BASE_URL")
        return cls(
            provider=provider,
            api_token=os.getenv("CARTLLM_LLM_API_TOKEN"),
            base_url=base_url,
            temperature=config.temperature,
            top_k=config.top_k,
            max_tokens=config.num_predict,
            timeout=config.llm_timeout,
        )
