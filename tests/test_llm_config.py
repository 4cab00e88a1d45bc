#!/usr/bin/env python3
"""
Tests for LLMConfig multi-provider support
"""

import os
import pytest
from unittest.mock import patch

from cartllm_core.config import config as settings
from cartllm_core.llm_config import (
    LLMConfig,
    PROVIDER_ENV_VARS,
    PROVIDER_BASE_URLS,
    DEFAULT_MODELS,
)


class TestLLMConfigBasic:
    """Basic LLMConfig functionality tests"""

    def test_default_config(self):
        """Default config should use Ollama"""
        config = LLMConfig()
        assert config.provider_name == "ollama"
        assert config.model_name == "qwen2.5:7b"
        assert config.is_local is True
        assert config.temperature == 0.1
        assert config.top_k == 1

    def test_provider_parsing(self):
        config = LLMConfig(provider="openai/gpt-4o-mini")
        assert config.provider_name == "openai"
        assert config.model_name == "gpt-4o-mini"

        config = LLMConfig(provider="openrouter/meta-llama/llama-3-8b-instruct")
        assert config.provider_name == "openrouter"
        assert config.model_name == "meta-llama/llama-3-8b-instruct"

    def test_provider_only(self):
        """Test when only provider is specified (uses default model)"""
        config = LLMConfig(provider="groq")
        assert config.model_name == DEFAULT_MODELS["groq"]

    def test_base_url_defaults(self):
        for provider, url in PROVIDER_BASE_URLS.items():
            config = LLMConfig(provider=f"{provider}/test-model")
            assert config.base_url == url

    def test_custom_base_url(self):
        custom_url = "https://custom.api.com/v1"
        config = LLMConfig(provider="openai/gpt-4o", base_url=custom_url)
        assert config.base_url == custom_url


class TestLLMConfigAPIToken:
    """API token resolution tests"""

    def test_explicit_api_token(self):
        config = LLMConfig(provider="openai/gpt-4o", api_token="sk-test-token")
        assert config.resolved_api_token == "sk-test-token"

    def test_env_prefix_api_token(self):
        """Test env: prefix for API token"""
        with patch.dict(os.environ, {"MY_CUSTOM_KEY": "custom-token-value"}):
            config = LLMConfig(provider="openai/gpt-4o", api_token="env:MY_CUSTOM_KEY")
            assert config.resolved_api_token == "custom-token-value"

    def test_auto_env_resolution(self):
        with patch.dict(os.environ, {"DEEPSEEK_API_KEY": "auto-resolved-token"}):
            config = LLMConfig(provider="deepseek/deepseek-chat")
            assert config.resolved_api_token == "auto-resolved-token"

    def test_ollama_no_api_key(self):
        config = LLMConfig(provider="ollama/llama3")
        assert config.resolved_api_token is None
        assert PROVIDER_ENV_VARS.get("ollama") is None


class TestLLMConfigValidation:
    """Validation tests"""

    def test_validate_with_api_key(self):
        config = LLMConfig(provider="openai/gpt-4o", api_token="sk-test")
        assert config.validate() is True

    def test_validate_without_api_key_for_cloud(self):
        """Validation should fail for cloud providers without API key"""
        with patch.dict(os.environ, {}, clear=True):
            config = LLMConfig(provider="openai/gpt-4o")
            with pytest.raises(ValueError, match="API token required"):
                config.validate()

    def test_validate_ollama_without_key(self):
        assert LLMConfig(provider="ollama/llama3").validate() is True


class TestLLMConfigSerialization:

    def test_to_dict(self):
        config = LLMConfig(
            provider="openai/gpt-4o-mini",
            api_token="sk-test",
            temperature=0.5,
            max_tokens=512,
        )
        d = config.to_dict()

        assert d["provider"] == "openai/gpt-4o-mini"
        assert d["provider_name"] == "openai"
        assert d["model_name"] == "gpt-4o-mini"
        assert d["temperature"] == 0.5
        assert d["max_tokens"] == 512
        assert d["has_api_token"] is True
        assert d["is_local"] is False
        assert "sk-test" not in d.values()

    def test_from_env_defaults_to_ollama(self, monkeypatch):
        monkeypatch.setattr(settings, "llm_provider", None)
        monkeypatch.setattr(settings, "ollama_model", "llama3.2:3b")
        monkeypatch.setattr(settings, "ollama_host", "http://gpu-box:11434")
        config = LLMConfig.from_env()
        assert config.provider_name == "ollama"
        assert config.model_name == "llama3.2:3b"
        assert config.base_url == "http://gpu-box:11434"

    def test_from_env_cloud_provider(self, monkeypatch):
        monkeypatch.setattr(settings, "llm_provider", "groq/llama3-8b-8192")
        monkeypatch.setattr(settings, "temperature", 0.7)
        monkeypatch.setenv("GROQ_API_KEY", "test-groq-key")
        monkeypatch.delenv("CARTLLM_LLM_API_TOKEN", raising=False)
        monkeypatch.delenv("CARTLLM_LLM_BASE_URL", raising=False)
        config = LLMConfig.from_env()

        assert config.provider_name == "groq"
        assert config.model_name == "llama3-8b-8192"
        assert config.temperature == 0.7
        assert config.resolved_api_token == "test-groq-key"
        assert config.base_url == PROVIDER_BASE_URLS["groq"]
