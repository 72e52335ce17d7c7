"""Local Ollama backend through the ollama SDK."""

from typing import Any, Dict

import httpx
import ollama

from brandlens.core.adapters.base import Completion, ProviderAdapter
from brandlens.core.exceptions import APIClientError, APITimeoutError
from brandlens.schemas.llm import CallOptions
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class OllamaAdapter(ProviderAdapter):
    """Ollama needs no credentials; it is available when enabled in settings."""

    name = "ollama"

    def __init__(
        self,
        api_url: str = "http://localhost:11434",
        default_model: str = "llama3.1",
        enabled: bool = False,
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        super().__init__("", default_model, timeout, max_retries, retry_delay)
        self.api_url = api_url
        self.enabled = enabled
        self.client = ollama.AsyncClient(host=api_url, timeout=timeout)

    def is_available(self) -> bool:
        return self.enabled

    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        messages = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        chat_kwargs: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
            },
        }

        async def attempt_call():
            try:
                return await self.client.chat(**chat_kwargs)
            except ollama.ResponseError as e:
                raise APIClientError(f"Ollama error: {e.error}", original_error=e, status_code=e.status_code) from e
            except httpx.TimeoutException as e:
                raise APITimeoutError(f"Ollama request timed out: {e}", original_error=e) from e
            except ConnectionError as e:
                raise APIClientError(f"Ollama unreachable at {self.api_url}: {e}", original_error=e) from e

        response = await self._with_retries(attempt_call)

        content = response.message.content or ""
        if not content:
            LOGGER.warning("Empty response from Ollama")

        return Completion(
            text=content,
            model_version=response.model or model,
            input_tokens=response.prompt_eval_count or 0,
            output_tokens=response.eval_count or 0,
        )
