"""
Provider Interface Definitions

Defines the task types, provider descriptors, adapter results and the
error taxonomy shared by every backend adapter.
"""

from typing import (
    FrozenSet,
    Literal,
    Optional,
    Protocol,
    Union,
)
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from enum import Enum
from dataclasses import dataclass


class Capability(str, Enum):
    """
    Kind of work a provider can be asked to do.

    Example:
        >>> Capability("vision-extraction") is Capability.VISION_EXTRACTION
        True
    """

    VISION_EXTRACTION = "vision-extraction"
    TEXT_EVALUATION = "text-evaluation"


class FailureKind(str, Enum):
    """
    Categorization of a failed provider invocation.

    The first four values are adapter errors; PARSE_ERROR is produced by
    the response normalizer.
    """

    NETWORK_FAILURE = "network_failure"
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    PARSE_ERROR = "parse_error"


# Failures that count against confidence. A timeout is silence, not an error.
EXPLICIT_FAILURE_KINDS: FrozenSet[FailureKind] = frozenset(
    {
        FailureKind.NETWORK_FAILURE,
        FailureKind.AUTH_FAILURE,
        FailureKind.RATE_LIMITED,
        FailureKind.PARSE_ERROR,
    }
)


# ============================================================================
# Custom Provider Exception Hierarchy
# ============================================================================


class ProviderError(Exception):
    """
    Base exception for provider-related errors.

    Adapters may raise these from their SDK call; BaseProvider converts
    them into an AdapterError carrying the same failure kind.
    """

    def __init__(self, message: str, kind: FailureKind = FailureKind.NETWORK_FAILURE):
        super().__init__(message)
        self.kind = kind


class ProviderNetworkError(ProviderError):
    """Raised when the provider cannot be reached or returns a server error."""

    def __init__(self, message: str = "Network failure"):
        super().__init__(message, FailureKind.NETWORK_FAILURE)


class ProviderRateLimitError(ProviderError):
    """Raised when provider rate limits or quotas are exceeded (HTTP 429)."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, FailureKind.RATE_LIMITED)


class ProviderTimeoutError(ProviderError):
    """Raised when the provider does not answer in time."""

    def __init__(self, message: str = "Request timeout"):
        super().__init__(message, FailureKind.TIMEOUT)


class ProviderAuthenticationError(ProviderError):
    """
    Raised when authentication fails.

    This typically indicates invalid API keys or expired credentials.
    """

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, FailureKind.AUTH_FAILURE)


class ConfigurationError(RuntimeError):
    """
    Raised on setup defects, e.g. no provider configured for a capability.

    This is the only error the engine raises to its callers; runtime
    provider failures are always reported inside the result.
    """


# ============================================================================
# Provider Metrics
# ============================================================================


@dataclass(frozen=True)
class ProviderMetrics:
    """
    Immutable snapshot of adapter metrics.

    Attributes:
        call_count: Total number of invoke() calls
        failure_count: Invocations that returned an AdapterError
        total_duration: Cumulative wall-clock seconds spent in invoke()
    """

    call_count: int
    failure_count: int
    total_duration: float


# ============================================================================
# Descriptors and Tasks
# ============================================================================


class ProviderDescriptor(BaseModel):
    """
    Identifies one backend.

    Descriptors are built once at start-up and never mutated. A backend
    serving both task kinds carries both capabilities.

    Attributes:
        name: Unique, stable provider name (e.g. 'gemini', 'openai', 'claude')
        capabilities: Task kinds this backend can serve
        available: Whether credentials were supplied for this backend
        vision_model: Model used for extraction tasks
        text_model: Model used for evaluation tasks

    Example:
        >>> descriptor = ProviderDescriptor(
        ...     name="gemini",
        ...     capabilities=frozenset({Capability.VISION_EXTRACTION}),
        ...     available=True,
        ... )
        >>> descriptor.supports(Capability.VISION_EXTRACTION)
        True
    """

    name: str = Field(..., description="Provider name", min_length=1)
    capabilities: FrozenSet[Capability] = Field(
        ..., description="Supported task kinds", min_length=1
    )
    available: bool = Field(..., description="Whether credentials were supplied")
    vision_model: Optional[str] = Field(None, description="Extraction model")
    text_model: Optional[str] = Field(None, description="Evaluation model")

    model_config = ConfigDict(frozen=True)

    def supports(self, capability: Capability) -> bool:
        """Whether this backend can serve tasks of the given capability."""
        return capability in self.capabilities

    def model_for(self, capability: Capability) -> Optional[str]:
        """Model identifier used for the given capability."""
        if capability is Capability.VISION_EXTRACTION:
            return self.vision_model
        return self.text_model


class ExtractionTask(BaseModel):
    """
    Extract every question from one page image.

    Attributes:
        image_bytes: Raw page image
        page_number: 1-based page number, used for logging and tracing
        mime_type: Image MIME type sent to providers
    """

    image_bytes: bytes = Field(..., description="Page image", min_length=1)
    page_number: int = Field(..., description="Page number", ge=1)
    mime_type: str = Field("image/png", description="Image MIME type")

    model_config = ConfigDict(frozen=True)

    @property
    def capability(self) -> Capability:
        return Capability.VISION_EXTRACTION


class EvaluationTask(BaseModel):
    """
    Grade a student's written answer against a question.

    Example:
        >>> task = EvaluationTask(
        ...     question_text="Discuss the role of the Finance Commission.",
        ...     student_answer_text="The Finance Commission ...",
        ...     subject="Polity",
        ...     max_marks=15,
        ... )
    """

    question_text: str = Field(..., description="Question text", min_length=1)
    student_answer_text: str = Field(..., description="Student answer", min_length=1)
    model_answer: Optional[str] = Field(None, description="Reference answer")
    subject: str = Field(..., description="Subject name", min_length=1)
    max_marks: float = Field(..., description="Maximum marks", gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def capability(self) -> Capability:
        return Capability.TEXT_EVALUATION


TaskRequest = Union[ExtractionTask, EvaluationTask]


# ============================================================================
# Adapter results
# ============================================================================


class RawResponse(BaseModel):
    """
    Unparsed reply from a single provider call.

    Attributes:
        provider: Provider name
        text: Response body as returned by the provider
        model: Model that produced the reply
        duration_seconds: Time spent in the call
    """

    provider: str = Field(..., description="Provider name", min_length=1)
    text: str = Field(..., description="Response body")
    model: Optional[str] = Field(None, description="Model used")
    duration_seconds: float = Field(0.0, description="Call duration", ge=0.0)

    model_config = ConfigDict(frozen=True)


class AdapterError(BaseModel):
    """
    Typed failure of one provider call.

    Example:
        >>> error = AdapterError(
        ...     provider="openai",
        ...     kind=FailureKind.RATE_LIMITED,
        ...     message="429 Too Many Requests",
        ... )
    """

    provider: str = Field(..., description="Provider name", min_length=1)
    kind: Literal[
        FailureKind.NETWORK_FAILURE,
        FailureKind.AUTH_FAILURE,
        FailureKind.RATE_LIMITED,
        FailureKind.TIMEOUT,
    ] = Field(..., description="Failure category")
    message: str = Field(..., description="Failure detail")
    duration_seconds: float = Field(0.0, description="Time spent before failing", ge=0.0)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("message", mode="before")
    @classmethod
    def _default_message(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "unknown error"
        return value


class ProviderConfig(BaseModel):
    """
    Configuration for a single provider.

    Attributes:
        name: Provider name (e.g., 'gemini', 'openai', 'claude')
        enabled: Whether provider is enabled
        api_key: API key; a missing key marks the provider unavailable
        api_base_url: Custom API base URL (optional)
        timeout_seconds: Transport timeout handed to the SDK client
        vision_model: Model used for extraction tasks
        text_model: Model used for evaluation tasks
        max_output_tokens: Generation limit per call
        temperature: Sampling temperature

    Example:
        >>> config = ProviderConfig(
        ...     name="openai",
        ...     api_key="sk-...",
        ...     vision_model="gpt-4o",
        ...     text_model="gpt-4o",
        ... )
    """

    name: str = Field(..., description="Provider name", min_length=1)
    enabled: bool = Field(True, description="Whether provider is enabled")
    api_key: Optional[str] = Field(None, description="API key")
    api_base_url: Optional[str] = Field(None, description="Custom API base URL")
    timeout_seconds: float = Field(
        120.0,
        description="Transport timeout",
        gt=0.0,
        le=600.0
    )
    vision_model: Optional[str] = Field(None, description="Extraction model")
    text_model: Optional[str] = Field(None, description="Evaluation model")
    max_output_tokens: int = Field(
        4000,
        description="Maximum tokens to generate",
        gt=0,
        le=200000
    )
    temperature: float = Field(
        0.1,
        description="Temperature (0-2)",
        ge=0.0,
        le=2.0
    )

    model_config = ConfigDict(
        extra="allow",  # Allow provider-specific config
        json_schema_extra={
            "example": {
                "name": "gemini",
                "enabled": True,
                "api_key": "AIza...",
                "timeout_seconds": 120.0,
                "vision_model": "gemini-1.5-pro",
                "text_model": "gemini-1.5-pro",
            }
        }
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class ProviderAdapter(Protocol):
    """
    Interface every backend adapter implements.

    Design Notes:
        - One outbound call per invocation, no internal retries
        - Failures are returned as AdapterError, never raised
        - Must not run past the supplied deadline
    """

    @property
    def name(self) -> str:
        """Provider name matching its descriptor"""
        ...

    async def invoke(
        self,
        task: TaskRequest,
        descriptor: ProviderDescriptor,
        deadline: float,
    ) -> Union[RawResponse, AdapterError]:
        """
        Issue one request for the task.

        Args:
            task: Extraction or evaluation task
            descriptor: Descriptor of this provider
            deadline: Absolute event-loop time after which the call must stop

        Returns:
            RawResponse on success, AdapterError otherwise
        """
        ...
