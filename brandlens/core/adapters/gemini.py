"""Google Gemini backend through the google-genai SDK."""

from typing import List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from brandlens.core.adapters.base import Completion, ProviderAdapter
from brandlens.core.exceptions import APIClientError, APITimeoutError
from brandlens.schemas.llm import CallOptions, Citation
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GeminiAdapter(ProviderAdapter):
    name = "gemini"
    supports_search = True

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.0-flash",
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        super().__init__(api_key, default_model, timeout, max_retries, retry_delay)
        self.client: Optional[genai.Client] = None
        if self.is_available() and not self.is_mock:
            self.client = genai.Client(api_key=self.api_key)
            LOGGER.info(f"Initialized Gemini client with model {self.default_model}")

    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        config = types.GenerateContentConfig(
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
        )
        if options.system_prompt:
            config.system_instruction = options.system_prompt
        if options.web_search:
            config.tools = [types.Tool(google_search=types.GoogleSearch())]

        async def attempt_call():
            try:
                return await self.client.aio.models.generate_content(
                    model=model,
                    contents=prompt,
                    config=config,
                )
            except genai_errors.APIError as e:
                raise APIClientError(f"Gemini generation failed: {e}", original_error=e, status_code=e.code) from e
            except httpx.TimeoutException as e:
                raise APITimeoutError(f"Gemini request timed out: {e}", original_error=e) from e

        response = await self._with_retries(attempt_call)
        if not response.text:
            LOGGER.warning("Empty response from Gemini")

        usage = response.usage_metadata
        citations = self._grounding_citations(response)
        return Completion(
            text=response.text or "",
            model_version=getattr(response, "model_version", None) or model,
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
            citations=citations,
            used_web_search=options.web_search,
        )

    @staticmethod
    def _grounding_citations(response) -> List[Citation]:
        citations: List[Citation] = []
        for candidate in response.candidates or []:
            metadata = getattr(candidate, "grounding_metadata", None)
            for chunk in (getattr(metadata, "grounding_chunks", None) or []):
                web = getattr(chunk, "web", None)
                if web is not None and web.uri:
                    citations.append(Citation(url=web.uri, title=web.title))
        return citations
