"""Provider adapter interface shared by every model backend."""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from brandlens.core.context import RunContext, UsageCounters
from brandlens.core.exceptions import (
    APIClientError,
    APITimeoutError,
    MalformedResponseError,
    ProviderCallError,
    ProviderUnavailableError,
)
from brandlens.prompts.templates import REPAIR_PROMPT, STRUCTURED_OUTPUT_INSTRUCTIONS
from brandlens.schemas.llm import CallOptions, Citation, FailureKind, RawResponse, TokenUsage
from brandlens.utils.json_parser import iter_json_blocks, parse_json_safely
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

MOCK_API_KEY = "mock"


@dataclass
class Completion:
    """Provider-neutral result of one successful generation."""
    text: str
    model_version: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    citations: List[Citation] = field(default_factory=list)
    used_web_search: bool = False


def format_instructions(schema: Type[BaseModel]) -> str:
    """Render the JSON-only instructions appended to structured prompts."""
    return STRUCTURED_OUTPUT_INSTRUCTIONS.format(
        schema=json.dumps(schema.model_json_schema(by_alias=True), indent=2)
    )


def parse_structured(text: str, schema: Type[T]) -> T:
    """Parse ``text`` into ``schema``.

    The whole text is tried first, then every balanced JSON block in order;
    the first candidate that validates wins.

    Raises:
        MalformedResponseError: If no candidate validates against the schema
    """
    candidates = []
    whole = parse_json_safely(text)
    if whole is not None:
        candidates.append(whole)
    for block in iter_json_blocks(text or ""):
        try:
            candidates.append(json.loads(block))
        except json.JSONDecodeError:
            continue

    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            return schema.model_validate(candidate)
        except PydanticValidationError as e:
            last_error = e

    if last_error is None:
        raise MalformedResponseError(f"No JSON found for {schema.__name__}", raw_text=text or "")
    raise MalformedResponseError(
        f"Response did not validate against {schema.__name__}: {last_error}",
        original_error=last_error,
        raw_text=text or "",
    )


def _is_retryable(error: APIClientError) -> bool:
    if isinstance(error, APITimeoutError) or error.status_code is None:
        return True
    return error.status_code == 429 or error.status_code >= 500


class ProviderAdapter(ABC):
    """Uniform wrapper around one model backend.

    Subclasses implement ``_generate`` and may raise ``APIClientError``;
    ``call`` turns every remote failure into an unsuccessful ``RawResponse``
    so that one bad cell never aborts a batch.
    """

    name: str = ""
    supports_structured_output: bool = True
    supports_search: bool = False

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout: float = 60,
        max_retries: int = 3,
        retry_delay: float = 2,
    ):
        self.api_key = api_key or ""
        self.default_model = default_model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.usage = UsageCounters()
        self.max_concurrency: Optional[int] = None
        self._limiter: Optional[asyncio.Semaphore] = None

    def set_concurrency(self, limit: int) -> None:
        """Fix the in-flight ceiling; takes effect for batches started afterwards."""
        self.max_concurrency = max(1, limit)
        self._limiter = None

    def limiter(self, default: int) -> asyncio.Semaphore:
        """Semaphore bounding in-flight calls to this provider across every batch.

        Sized from ``max_concurrency`` when set, otherwise from ``default`` on first use.
        """
        if self._limiter is None:
            self._limiter = asyncio.Semaphore(self.max_concurrency or max(1, default))
        return self._limiter

    async def _with_retries(self, attempt_call: Callable[[], Awaitable[Any]]) -> Any:
        """Run an SDK call, retrying rate limits, server errors and timeouts.

        Used by the SDK-backed adapters; the HTTP adapters retry inside
        ``BaseLLMClient``. Waits ``retry_delay * 2 ** attempt`` between attempts.

        Raises:
            APIClientError: The last error once retries are exhausted, or any
                non-retryable client error straight away
        """
        for attempt in range(self.max_retries):
            try:
                return await attempt_call()
            except APIClientError as e:
                if not _is_retryable(e) or attempt == self.max_retries - 1:
                    raise
                wait_time = self.retry_delay * (2 ** attempt)
                LOGGER.warning(
                    f"{self.name} error (Attempt {attempt + 1}/{self.max_retries}): {e}; retrying in {wait_time}s"
                )
                await asyncio.sleep(wait_time)
        raise APIClientError(f"{self.name} generation failed")

    def is_available(self) -> bool:
        """An adapter is available when it has credentials."""
        return bool(self.api_key)

    @property
    def is_mock(self) -> bool:
        return self.api_key == MOCK_API_KEY

    async def call(
        self,
        prompt: str,
        options: Optional[CallOptions] = None,
        prompt_id: Optional[str] = None,
        context: Optional[RunContext] = None,
    ) -> RawResponse:
        """Send one prompt and return the outcome, never raising on remote errors.

        Args:
            prompt: Prompt text
            options: Model, sampling and timeout options
            prompt_id: Id of the prompt instance, copied to the response
            context: Run context accumulating this batch's usage

        Returns:
            RawResponse with ``success=False`` and a failure kind on error

        Raises:
            ProviderUnavailableError: If the adapter has no credentials
        """
        if not self.is_available():
            raise ProviderUnavailableError(self.name)

        options = options or CallOptions(timeout=self.timeout)
        model = options.model or self.default_model
        started = time.perf_counter()

        try:
            if self.is_mock:
                completion = self._mock_completion(prompt, model)
            else:
                completion = await asyncio.wait_for(
                    self._generate(prompt, options, model), timeout=options.timeout
                )
        except asyncio.TimeoutError:
            response = self._failed(model, prompt_id, FailureKind.TIMEOUT, f"Timed out after {options.timeout}s")
        except APITimeoutError as e:
            response = self._failed(model, prompt_id, FailureKind.TIMEOUT, str(e))
        except APIClientError as e:
            kind = FailureKind.PROVIDER_ERROR
            if e.status_code is not None and 400 <= e.status_code < 500 and e.status_code != 429:
                kind = FailureKind.MALFORMED_REQUEST
            response = self._failed(model, prompt_id, kind, str(e))
        except Exception as e:
            LOGGER.warning(f"{self.name} call raised unexpectedly: {e}", exc_info=True)
            response = self._failed(model, prompt_id, FailureKind.PROVIDER_ERROR, str(e))
        else:
            response = RawResponse(
                provider=self.name,
                model=model,
                prompt_id=prompt_id,
                text=completion.text or "",
                model_version=completion.model_version or model,
                token_usage=TokenUsage(input=completion.input_tokens, output=completion.output_tokens),
                citations=completion.citations,
                used_web_search=completion.used_web_search,
            )

        response.latency_ms = int((time.perf_counter() - started) * 1000)
        self.usage.record(response.token_usage, response.success)
        if context is not None:
            context.record_usage(self.name, response.token_usage, response.success)

        if not response.success:
            LOGGER.warning(
                f"{self.name}/{model} call failed ({response.failure_kind.value}): {response.error}"
            )
        return response

    async def call_structured(
        self,
        prompt: str,
        schema: Type[T],
        options: Optional[CallOptions] = None,
        context: Optional[RunContext] = None,
    ) -> T:
        """Call with JSON format instructions and parse the answer into ``schema``.

        A parse failure triggers exactly one repair round-trip.

        Raises:
            ProviderCallError: If a call fails
            MalformedResponseError: If the repaired answer still does not validate
        """
        response = await self.call(f"{prompt}\n\n{format_instructions(schema)}", options, context=context)
        if not response.success:
            raise ProviderCallError(response.error or "call failed", failure_kind=response.failure_kind.value)

        try:
            return parse_structured(response.text, schema)
        except MalformedResponseError as e:
            LOGGER.info(f"{self.name} structured parse failed, attempting repair: {e}")
            return await self.repair_structured(response.text, schema, options, context=context)

    async def repair_structured(
        self,
        malformed_text: str,
        schema: Type[T],
        options: Optional[CallOptions] = None,
        guidance: str = "",
        context: Optional[RunContext] = None,
    ) -> T:
        """Re-submit malformed text plus the target schema and parse the answer once.

        Raises:
            ProviderCallError: If the repair call fails
            MalformedResponseError: If the repaired answer does not validate
        """
        prompt = REPAIR_PROMPT.format(
            guidance=guidance.strip(),
            malformed_text=malformed_text,
            schema=json.dumps(schema.model_json_schema(by_alias=True), indent=2),
        )
        repair_options = (options or CallOptions(timeout=self.timeout)).model_copy(update={"temperature": 0.0})
        response = await self.call(prompt, repair_options, context=context)
        if not response.success:
            raise ProviderCallError(
                f"Repair call failed: {response.error}", failure_kind=response.failure_kind.value
            )
        return parse_structured(response.text, schema)

    @abstractmethod
    async def _generate(self, prompt: str, options: CallOptions, model: str) -> Completion:
        """Issue one request to the backend."""
        pass

    def _mock_completion(self, prompt: str, model: str) -> Completion:
        text = f"[mock {self.name}/{model}] {prompt.strip()[:120]}"
        return Completion(
            text=text,
            model_version=f"{model}-mock",
            input_tokens=max(1, len(prompt) // 4),
            output_tokens=max(1, len(text) // 4),
        )

    def _failed(
        self, model: str, prompt_id: Optional[str], kind: FailureKind, error: str
    ) -> RawResponse:
        return RawResponse(
            provider=self.name,
            model=model,
            prompt_id=prompt_id,
            success=False,
            error=error,
            failure_kind=kind,
        )
