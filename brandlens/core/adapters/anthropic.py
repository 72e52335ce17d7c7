"""Anthropic Messages API backend over HTTP."""

from typing import Any, Dict, List

from brandlens.core.adapters.base import Completion, ProviderAdapter
from brandlens.core.base_llm_client import BaseLLMClient
from brandlens.core.exceptions import APIClientError
from brandlens.schemas.llm import CallOptions, Citation

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    name = "anthropic"
    supports_search = True

    def __init__(
        self,
        api_key: str,
        default_model: str,
        base_url: str = "https://api.anthropic.com/v1/messages",
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        super().__init__(api_key, default_model, timeout, max_retries, retry_delay)
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            auth_header="x-api-key",
            auth_scheme=None,
        )

    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens,
            "temperature": min(options.temperature, 1.0),
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.system_prompt:
            payload["system"] = options.system_prompt
        if options.web_search:
            payload["tools"] = [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}]

        response = await self.client.call_api(
            payload=payload, headers={"anthropic-version": ANTHROPIC_VERSION}
        )

        blocks = response.get("content")
        if blocks is None:
            raise APIClientError("Invalid response format from anthropic")

        texts: List[str] = []
        citations: List[Citation] = []
        used_search = False
        for block in blocks:
            block_type = block.get("type")
            if block_type == "text":
                texts.append(block.get("text", ""))
                for citation in block.get("citations") or []:
                    if citation.get("url"):
                        citations.append(Citation(url=citation["url"], title=citation.get("title")))
            elif block_type == "server_tool_use":
                used_search = True

        usage = response.get("usage") or {}
        return Completion(
            text="".join(texts),
            model_version=response.get("model", model),
            input_tokens=usage.get("input_tokens") or 0,
            output_tokens=usage.get("output_tokens") or 0,
            citations=citations,
            used_web_search=used_search,
        )
