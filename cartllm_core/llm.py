#!/usr/bin/env python3
"""
Language model capability - sessions over HTTP model backends.

Surface used by the analyzer:

    status = await model.availability()            # "available" | "downloadable" | "unavailable"
    session = await model.create(system_prompt=..., temperature=0.1, top_k=1, language="en")
    text = await session.prompt("...")
    session.destroy()                              # idempotent
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .retry import ModelUnavailableError, NetworkError, retry_network

logger = logging.getLogger(__name__)

AVAILABLE = "available"
DOWNLOADABLE = "downloadable"
UNAVAILABLE = "unavailable"


class ModelSession:
    """One conversation with a fixed system prompt."""

    def __init__(self, model: "LanguageModel", system_prompt: str, options: Dict[str, Any]):
        self.model = model
        self.options = options
        self.messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        self.destroyed = False

    async def prompt(self, text: str) -> str:
        if self.destroyed:
            raise RuntimeError("Session has been destroyed")
        self.messages.append({"role": "user", "content": text})
        reply = await self.model.complete(self.messages, self.options)
        self.messages.append({"role": "assistant", "content": reply})
        return reply

    def destroy(self) -> None:
        if not self.destroyed:
            self.destroyed = True
            self.messages = []


class LanguageModel:
    """Base class for HTTP chat backends."""

    def __init__(self, base_url: str, model: str, timeout: int = 120,
                 temperature: float = 0.1, top_k: int = 1, max_tokens: int = 256,
                 extra_params: Optional[Dict[str, Any]] = None):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.top_k = top_k
        self.max_tokens = max_tokens
        # Backend-specific sampling options, merged into every request
        self.extra_params = dict(extra_params or {})

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    @retry_network(max_attempts=2, initial_delay=0.5)
    async def _request(self, method: str, path: str, payload: Optional[Dict] = None) -> Any:
        timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout_obj) as session:
                async with session.request(
                    method, f"{self.base_url}{path}", json=payload, headers=self._headers()
                ) as resp:
                    if resp.status >= 500:
                        raise NetworkError(f"Server error {resp.status}: {await resp.text()}")
                    if resp.status != 200:
                        raise ModelUnavailableError(f"API error {resp.status}: {await resp.text()}")
                    return await resp.json(content_type=None)
        except aiohttp.ClientConnectionError as e:
            raise NetworkError(str(e)) from e

    async def create(self, system_prompt: str, temperature: Optional[float] = None,
                     top_k: Optional[int] = None, language: Optional[str] = None) -> ModelSession:
        options = {
            "temperature": self.temperature if temperature is None else temperature,
            "top_k": self.top_k if top_k is None else top_k,
            "language": language,
        }
        return ModelSession(self, system_prompt, options)

    async def availability(self, **options) -> str:
        raise NotImplementedError

    async def complete(self, messages: List[Dict[str, str]], options: Dict[str, Any]) -> str:
        raise NotImplementedError


class OllamaLanguageModel(LanguageModel):
    """Local Ollama server (``/api/tags``, ``/api/chat``)."""

    async def availability(self, **options) -> str:
        try:
            data = await self._request("GET", "/api/tags")
        except Exception as e:
            logger.debug(f"Ollama availability check failed: {e}")
            return UNAVAILABLE
        names = {m.get("name") for m in (data or {}).get("models", []) if isinstance(m, dict)}
        if self.model in names or f"{self.model}:latest" in names:
            return AVAILABLE
        return DOWNLOADABLE

    async def complete(self, messages: List[Dict[str, str]], options: Dict[str, Any]) -> str:
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": options.get("temperature"),
                "top_k": options.get("top_k"),
                "num_predict": self.max_tokens,
                **self.extra_params,
            },
        }
        data = await self._request("POST", "/api/chat", payload)
        if not isinstance(data, dict):
            return str(data)
        return (data.get("message") or {}).get("content", "") or data.get("response", "")


class OpenAICompatibleLanguageModel(LanguageModel):
    """OpenAI-compatible ``/chat/completions`` endpoint (OpenAI, Groq, DeepSeek...)."""

    def __init__(self, base_url: str, model: str, api_key: Optional[str] = None, **kwargs):
        super().__init__(base_url, model, **kwargs)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def availability(self, **options) -> str:
        if not self.api_key:
            return UNAVAILABLE
        try:
            await self._request("GET", "/models")
        except Exception as e:
            logger.debug(f"Model endpoint availability check failed: {e}")
            return UNAVAILABLE
        return AVAILABLE

    async def complete(self, messages: List[Dict[str, str]], options: Dict[str, Any]) -> str:
        # top_k is not part of the OpenAI chat API
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": options.get("temperature"),
            "max_tokens": self.max_tokens,
            **self.extra_params,
        }
        data = await self._request("POST", "/chat/completions", payload)
        choices = (data or {}).get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content", "") or ""
