"""OpenAI-compatible chat completion backends over HTTP."""

from typing import Any, Dict, List

from brandlens.core.adapters.base import Completion, ProviderAdapter
from brandlens.core.base_llm_client import BaseLLMClient
from brandlens.core.exceptions import APIClientError
from brandlens.schemas.llm import CallOptions, Citation
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ChatCompletionsAdapter(ProviderAdapter):
    """Adapter for any backend speaking the ``/chat/completions`` protocol."""

    def __init__(
        self,
        api_key: str,
        default_model: str,
        base_url: str,
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        super().__init__(api_key, default_model, timeout, max_retries, retry_delay)
        self.base_url = base_url
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
        )

    def _build_payload(self, prompt: str, options: CallOptions, model: str) -> Dict[str, Any]:
        messages = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        return {
            "model": model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }

    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        payload = self._build_payload(prompt, options, model)
        response = await self.client.call_api(endpoint="", method="POST", payload=payload)

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected {self.name} response format: {str(response)[:300]}")
            raise APIClientError(f"Invalid response format from {self.name}")

        message = choices[0].get("message") or {}
        content = message.get("content") or ""
        if not content:
            LOGGER.warning(f"Empty response from {self.name}")

        usage = response.get("usage") or {}
        citations = self._extract_citations(response, message)
        return Completion(
            text=content,
            model_version=response.get("model", model),
            input_tokens=usage.get("prompt_tokens") or 0,
            output_tokens=usage.get("completion_tokens") or 0,
            citations=citations,
            used_web_search=bool(citations) or self._searched(options),
        )

    def _extract_citations(self, response: Dict[str, Any], message: Dict[str, Any]) -> List[Citation]:
        citations = []
        for annotation in message.get("annotations") or []:
            url_citation = annotation.get("url_citation") or {}
            if annotation.get("type") == "url_citation" and url_citation.get("url"):
                citations.append(Citation(url=url_citation["url"], title=url_citation.get("title")))
        return citations

    def _searched(self, options: CallOptions) -> bool:
        return False


class OpenAIAdapter(ChatCompletionsAdapter):
    name = "openai"
    supports_search = True

    def _build_payload(self, prompt: str, options: CallOptions, model: str) -> Dict[str, Any]:
        payload = super()._build_payload(prompt, options, model)
        if options.web_search:
            # Search-preview models reject sampling parameters.
            payload.pop("temperature", None)
            payload["web_search_options"] = {}
        return payload

    def _searched(self, options: CallOptions) -> bool:
        return options.web_search


class MistralAdapter(ChatCompletionsAdapter):
    name = "mistral"


class PerplexityAdapter(ChatCompletionsAdapter):
    """Perplexity's sonar models always search the web."""

    name = "perplexity"
    supports_search = True

    def _extract_citations(self, response: Dict[str, Any], message: Dict[str, Any]) -> List[Citation]:
        results = response.get("search_results") or []
        if results:
            return [Citation(url=r["url"], title=r.get("title")) for r in results if r.get("url")]
        return [Citation(url=url) for url in response.get("citations") or [] if isinstance(url, str)]

    def _searched(self, options: CallOptions) -> bool:
        return True


class OpenRouterAdapter(ChatCompletionsAdapter):
    name = "openrouter"
    supports_search = True

    def _build_payload(self, prompt: str, options: CallOptions, model: str) -> Dict[str, Any]:
        payload = super()._build_payload(prompt, options, model)
        if options.web_search and not model.endswith(":online"):
            payload["model"] = f"{model}:online"
        return payload

    def _searched(self, options: CallOptions) -> bool:
        return options.web_search
