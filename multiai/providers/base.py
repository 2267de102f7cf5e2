"""
Base Provider Implementation

Abstract base class providing the common invoke() machinery for all
backend adapters: capability checks, deadline enforcement, error
categorization and metrics.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from typing import ClassVar, FrozenSet, Optional, Union

from multiai.observability.logging import get_logger
from multiai.observability.metrics import increment_counter, record_histogram
from multiai.providers.interfaces import (
    AdapterError,
    Capability,
    EvaluationTask,
    ExtractionTask,
    FailureKind,
    ProviderConfig,
    ProviderDescriptor,
    ProviderError,
    ProviderMetrics,
    RawResponse,
    TaskRequest,
)

logger = get_logger(__name__)


class BaseProvider(ABC):
    """
    Abstract base provider providing common functionality.

    Subclasses must implement:
    - name property
    - _extract_impl()
    - _evaluate_impl()

    Both implementation hooks return the provider's raw response text and
    may raise any exception; invoke() turns exceptions into AdapterError.

    Example:
        >>> class MyProvider(BaseProvider):
        ...     @property
        ...     def name(self) -> str:
        ...         return "myprovider"
        ...
        ...     async def _extract_impl(self, task: ExtractionTask) -> str:
        ...         return '{"questions": []}'
        ...
        ...     async def _evaluate_impl(self, task: EvaluationTask) -> str:
        ...         raise NotImplementedError
    """

    CAPABILITIES: ClassVar[FrozenSet[Capability]] = frozenset(
        {Capability.VISION_EXTRACTION, Capability.TEXT_EVALUATION}
    )
    DEFAULT_VISION_MODEL: ClassVar[Optional[str]] = None
    DEFAULT_TEXT_MODEL: ClassVar[Optional[str]] = None

    def __init__(self, config: ProviderConfig):
        """
        Initialize base provider.

        Args:
            config: Provider configuration
        """
        self.config = config
        self._call_count = 0
        self._failure_count = 0
        self._total_duration = 0.0
        self._metrics_lock = threading.Lock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gemini', 'openai', 'claude')"""
        raise NotImplementedError

    @property
    def vision_model(self) -> Optional[str]:
        return self.config.vision_model or self.DEFAULT_VISION_MODEL

    @property
    def text_model(self) -> Optional[str]:
        return self.config.text_model or self.DEFAULT_TEXT_MODEL

    def describe(self, available: bool = True) -> ProviderDescriptor:
        """Build the immutable descriptor for this adapter."""
        return ProviderDescriptor(
            name=self.name,
            capabilities=self.CAPABILITIES,
            available=available,
            vision_model=self.vision_model,
            text_model=self.text_model,
        )

    async def invoke(
        self,
        task: TaskRequest,
        descriptor: ProviderDescriptor,
        deadline: float,
    ) -> Union[RawResponse, AdapterError]:
        """
        Issue exactly one request for the task.

        Args:
            task: Extraction or evaluation task
            descriptor: Descriptor of this provider
            deadline: Absolute event-loop time (loop.time()) bounding the call

        Returns:
            RawResponse on success, AdapterError on any failure

        Raises:
            ValueError: If the task does not match the descriptor
        """
        self._validate_task(task, descriptor)

        loop = asyncio.get_running_loop()
        started = loop.time()
        remaining = deadline - started
        if remaining <= 0:
            return self._failure(FailureKind.TIMEOUT, "Deadline already expired", 0.0)

        try:
            text = await asyncio.wait_for(self._dispatch(task), timeout=remaining)
        except asyncio.TimeoutError:
            duration = loop.time() - started
            return self._failure(
                FailureKind.TIMEOUT,
                f"No response within {remaining:.2f}s",
                duration,
            )
        except Exception as exc:
            duration = loop.time() - started
            return self._failure(self._categorize_error(exc), str(exc), duration)

        duration = loop.time() - started
        self._record_metrics(duration, failed=False)
        return RawResponse(
            provider=self.name,
            text=text or "",
            model=descriptor.model_for(task.capability),
            duration_seconds=duration,
        )

    async def _dispatch(self, task: TaskRequest) -> str:
        if isinstance(task, ExtractionTask):
            return await self._extract_impl(task)
        return await self._evaluate_impl(task)

    @abstractmethod
    async def _extract_impl(self, task: ExtractionTask) -> str:
        """
        Send the extraction instruction and page image.

        Args:
            task: Extraction task

        Returns:
            Response text

        Raises:
            Exception: On transport or API failure
        """
        raise NotImplementedError

    @abstractmethod
    async def _evaluate_impl(self, task: EvaluationTask) -> str:
        """
        Send the composed evaluation prompt.

        Args:
            task: Evaluation task

        Returns:
            Response text

        Raises:
            Exception: On transport or API failure
        """
        raise NotImplementedError

    def _validate_task(self, task: TaskRequest, descriptor: ProviderDescriptor) -> None:
        """
        Validate the task against the descriptor before any network call.

        Raises:
            ValueError: If the task is routed to the wrong adapter
        """
        if descriptor.name != self.name:
            raise ValueError(
                f"Descriptor '{descriptor.name}' does not belong to provider '{self.name}'"
            )

        if not descriptor.supports(task.capability):
            raise ValueError(
                f"Provider '{self.name}' does not support {task.capability.value} tasks"
            )

    def _failure(self, kind: FailureKind, message: str, duration: float) -> AdapterError:
        self._record_metrics(duration, failed=True)
        logger.warning(
            "provider_call_failed",
            provider=self.name,
            kind=kind.value,
            error=message,
        )
        return AdapterError(
            provider=self.name,
            kind=kind,
            message=message,
            duration_seconds=max(0.0, duration),
        )

    def _categorize_error(self, error: Exception) -> FailureKind:
        """
        Categorize an exception into a failure kind.

        Uses isinstance checks for our own exceptions first, then the
        provider-specific hook, HTTP status codes, exception type names and
        finally message heuristics.

        Args:
            error: Exception that occurred

        Returns:
            FailureKind (never PARSE_ERROR)
        """
        if isinstance(error, ProviderError) and error.kind is not FailureKind.PARSE_ERROR:
            return error.kind

        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return FailureKind.TIMEOUT

        sdk_kind = self._determine_failure_kind(error)
        if sdk_kind is not None:
            return sdk_kind

        # Check for HTTP status code on exception (common in SDK exceptions)
        status_code = getattr(error, "status_code", None) or getattr(error, "code", None)
        if isinstance(status_code, int):
            if status_code == 429:
                return FailureKind.RATE_LIMITED
            if status_code in (401, 403):
                return FailureKind.AUTH_FAILURE
            if status_code in (408, 504):
                return FailureKind.TIMEOUT

        error_type = type(error).__name__
        if "RateLimit" in error_type or "ResourceExhausted" in error_type:
            return FailureKind.RATE_LIMITED
        if "Timeout" in error_type or "DeadlineExceeded" in error_type:
            return FailureKind.TIMEOUT
        if (
            "Authentication" in error_type
            or "Unauthenticated" in error_type
            or "PermissionDenied" in error_type
        ):
            return FailureKind.AUTH_FAILURE

        error_str = str(error).lower()
        if "rate limit" in error_str or "429" in error_str or "quota" in error_str:
            return FailureKind.RATE_LIMITED
        if "timeout" in error_str or "timed out" in error_str:
            return FailureKind.TIMEOUT
        if (
            "api key" in error_str
            or "unauthorized" in error_str
            or "401" in error_str
            or "403" in error_str
        ):
            return FailureKind.AUTH_FAILURE

        return FailureKind.NETWORK_FAILURE

    def _determine_failure_kind(self, error: Exception) -> Optional[FailureKind]:
        """
        Provider-specific classification of SDK exceptions.

        Returns None when the exception is not recognized.
        """
        return None

    def get_metrics(self) -> ProviderMetrics:
        """
        Get atomic snapshot of adapter metrics.

        Example:
            >>> metrics = provider.get_metrics()
            >>> print(f"Calls: {metrics.call_count}, failures: {metrics.failure_count}")
        """
        with self._metrics_lock:
            return ProviderMetrics(
                call_count=self._call_count,
                failure_count=self._failure_count,
                total_duration=self._total_duration,
            )

    @property
    def call_count(self) -> int:
        """Number of invoke() calls that reached the provider (thread-safe)"""
        with self._metrics_lock:
            return self._call_count

    def _record_metrics(self, duration: float, *, failed: bool) -> None:
        """Record metrics for a completed invocation in a thread-safe manner."""
        with self._metrics_lock:
            self._call_count += 1
            self._total_duration += max(0.0, duration)
            if failed:
                self._failure_count += 1
        record_histogram(
            "provider_latency_seconds", max(0.0, duration), labels={"provider": self.name}
        )
        increment_counter(
            "provider_calls_total",
            labels={"provider": self.name, "status": "failed" if failed else "ok"},
        )
