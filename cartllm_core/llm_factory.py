import logging
from typing import Optional

from .llm import LanguageModel, OllamaLanguageModel, OpenAICompatibleLanguageModel
from .llm_config import LLMConfig

logger = logging.getLogger(__name__)


def setup_llm(llm_config: Optional[LLMConfig] = None) -> LanguageModel:
    """
    Create the model capability from configuration.

    Args:
        llm_config: Optional LLMConfig. If not provided, uses CARTLLM_* settings.
    """
    if llm_config is None:
        llm_config = LLMConfig.from_env()
    return create_llm_client(llm_config)


def create_llm_client(llm_config: LLMConfig) -> LanguageModel:
    common = dict(
        timeout=llm_config.timeout,
        temperature=llm_config.temperature,
        top_k=llm_config.top_k,
        max_tokens=llm_config.max_tokens,
        extra_params=llm_config.extra_params,
    )
    if llm_config.is_local:
        logger.debug(f"Using Ollama model {llm_config.model_name} at {llm_config.base_url}")
        return OllamaLanguageModel(llm_config.base_url, llm_config.model_name, **common)

    llm_config.validate()
    logger.debug(f"Using {llm_config.provider_name} model {llm_config.model_name}")
    return OpenAICompatibleLanguageModel(
        llm_config.base_url,
        llm_config.model_name,
        api_key=llm_config.resolved_api_token,
        **common,
    )
