"""Provider call options and raw response models."""

from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Why a single batch cell did not produce a response."""
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    MALFORMED_REQUEST = "malformed_request"
    CANCELLED = "cancelled"


class CallOptions(BaseModel):
    """Per-call options accepted by every provider adapter."""
    model: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    timeout: float = Field(default=60.0, gt=0)
    system_prompt: Optional[str] = None
    web_search: bool = False


class TokenUsage(BaseModel):
    """Token counts reported by a provider for one call."""
    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(input=self.input + other.input, output=self.output + other.output)


class Citation(BaseModel):
    """A source consulted by a search-capable provider."""
    url: str
    title: Optional[str] = None


class RawResponse(BaseModel):
    """Outcome of one provider call, successful or not."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    provider: str
    model: Optional[str] = None
    prompt_id: Optional[str] = None
    text: str = ""
    model_version: Optional[str] = None
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    latency_ms: int = 0
    success: bool = True
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    citations: List[Citation] = Field(default_factory=list)
    used_web_search: bool = False
