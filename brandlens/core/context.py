"""Per-batch run context: correlation id and usage accumulators."""

import threading
from typing import Dict, Optional
from uuid import uuid4

from brandlens.schemas.llm import TokenUsage
from brandlens.utils.logging import correlation_id_var, get_logger

LOGGER = get_logger(__name__)


class UsageCounters:
    """Cumulative token usage, safe to update from concurrent calls."""

    def __init__(self):
        self._lock = threading.Lock()
        self.input_tokens = 0
        self.output_tokens = 0
        self.calls = 0
        self.failures = 0

    def record(self, usage: TokenUsage, success: bool = True) -> None:
        with self._lock:
            self.input_tokens += usage.input
            self.output_tokens += usage.output
            self.calls += 1
            if not success:
                self.failures += 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return {
                "input_tokens": self.input_tokens,
                "output_tokens": self.output_tokens,
                "total_tokens": self.input_tokens + self.output_tokens,
                "calls": self.calls,
                "failures": self.failures,
            }

    def as_token_usage(self) -> TokenUsage:
        with self._lock:
            return TokenUsage(input=self.input_tokens, output=self.output_tokens)


class RunContext:
    """Context threaded through one batch run.

    Carries the correlation id stamped on log records and the usage
    accumulated by this batch alone. Entering the context binds the
    correlation id for the current task and every task it spawns; exiting
    closes the context, after which usage is no longer recorded.

    Usage:
        with RunContext() as context:
            execution = await orchestrator.run_batch(..., context=context)
        usage = context.usage_by_provider()
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or uuid4().hex[:12]
        self._usage: Dict[str, UsageCounters] = {}
        self._lock = threading.Lock()
        self._token = None
        self.closed = False

    def __enter__(self) -> "RunContext":
        self._token = correlation_id_var.set(self.correlation_id)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._token is not None:
            correlation_id_var.reset(self._token)
            self._token = None
        self.close()

    def record_usage(self, provider: str, usage: TokenUsage, success: bool = True) -> None:
        if self.closed:
            LOGGER.debug(f"Ignoring usage for {provider} on closed context {self.correlation_id}")
            return
        with self._lock:
            counters = self._usage.setdefault(provider, UsageCounters())
        counters.record(usage, success)

    def usage_by_provider(self) -> Dict[str, TokenUsage]:
        with self._lock:
            return {name: counters.as_token_usage() for name, counters in self._usage.items()}

    def total_usage(self) -> TokenUsage:
        total = TokenUsage()
        for usage in self.usage_by_provider().values():
            total = total + usage
        return total

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            LOGGER.debug(
                "Run context closed",
                extra={"correlation_id": self.correlation_id, "total_tokens": self.total_usage().total},
            )
