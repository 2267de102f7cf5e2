"""
Orchestration Controller

Fans one task out to every available provider that supports it, bounds the
whole fan-out by a single deadline, and normalizes whatever comes back into
ProviderOutcome values. Provider failures never escape as exceptions.
"""

import asyncio
from typing import Dict, List, Optional, Sequence, Union

from multiai.consensus.models import ParseError, ProviderOutcome, kind_for_capability
from multiai.normalizer import normalize
from multiai.observability.logging import get_logger
from multiai.observability.metrics import increment_counter
from multiai.providers.interfaces import (
    AdapterError,
    ConfigurationError,
    FailureKind,
    ProviderDescriptor,
    RawResponse,
    TaskRequest,
)
from multiai.providers.registry import ProviderRegistry

logger = get_logger(__name__)


def _discard_late_outcome(invocation: asyncio.Future) -> None:
    """Retrieve the exception of a call that finished after its deadline."""
    if invocation.cancelled():
        return
    error = invocation.exception()
    if error is not None:
        logger.debug(
            "late_provider_error_discarded",
            error=str(error),
            error_type=type(error).__name__,
        )


class OrchestrationController:
    """
    Concurrent fan-out of one task with a deadline.

    Stateless between calls: no retries, no caching. Outcome order is not
    specified.

    Example:
        >>> controller = OrchestrationController(registry)
        >>> outcomes = await controller.run(task, timeout=60.0)
        >>> {o.provider: o.succeeded for o in outcomes}
        {'claude': True, 'gemini': True, 'openai': False}
    """

    def __init__(self, registry: ProviderRegistry, cancel_grace_seconds: float = 0.05):
        """
        Initialize controller.

        Args:
            registry: Frozen provider registry
            cancel_grace_seconds: Time cancelled calls get to unwind
        """
        self._registry = registry
        self.cancel_grace_seconds = cancel_grace_seconds

    def targets(
        self,
        task: TaskRequest,
        descriptors: Optional[Sequence[ProviderDescriptor]] = None,
    ) -> List[ProviderDescriptor]:
        """
        Available descriptors that support the task and have an adapter.

        Raises:
            ConfigurationError: If no provider can serve the task
        """
        candidates = (
            descriptors
            if descriptors is not None
            else self._registry.available_descriptors(task.capability)
        )
        selected = [
            descriptor
            for descriptor in candidates
            if descriptor.available
            and descriptor.supports(task.capability)
            and self._registry.get_adapter(descriptor.name) is not None
        ]
        if not selected:
            raise ConfigurationError(
                f"No available provider supports {task.capability.value} tasks"
            )
        return sorted(selected, key=lambda descriptor: descriptor.name)

    async def run(
        self,
        task: TaskRequest,
        descriptors: Optional[Sequence[ProviderDescriptor]] = None,
        *,
        timeout: float,
    ) -> List[ProviderOutcome]:
        """
        Invoke every target concurrently and collect one outcome per target.

        Args:
            task: Extraction or evaluation task
            descriptors: Candidate providers (defaults to the registry's)
            timeout: Seconds until the task deadline

        Returns:
            One ProviderOutcome per target; calls still running at the
            deadline are cancelled and reported as timeouts

        Raises:
            ConfigurationError: If no provider can serve the task
        """
        targets = self.targets(task, descriptors)
        kind = kind_for_capability(task.capability)

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + max(0.0, timeout)

        pending_by_task: Dict[asyncio.Task, ProviderDescriptor] = {}
        for descriptor in targets:
            adapter = self._registry.get_adapter(descriptor.name)
            invocation = asyncio.ensure_future(adapter.invoke(task, descriptor, deadline))
            pending_by_task[invocation] = descriptor

        done, pending = await asyncio.wait(
            pending_by_task.keys(), timeout=max(0.0, deadline - loop.time())
        )

        outcomes: List[ProviderOutcome] = []

        if pending:
            for invocation in pending:
                invocation.cancel()
                invocation.add_done_callback(_discard_late_outcome)
            # Bounded wait so run() returns within timeout + grace
            await asyncio.wait(pending, timeout=self.cancel_grace_seconds)
            elapsed = loop.time() - started
            for invocation in pending:
                descriptor = pending_by_task[invocation]
                logger.warning(
                    "provider_timeout",
                    provider=descriptor.name,
                    timeout_seconds=timeout,
                )
                outcomes.append(
                    self._outcome(
                        descriptor.name,
                        AdapterError(
                            provider=descriptor.name,
                            kind=FailureKind.TIMEOUT,
                            message=f"No response within {timeout:.2f}s",
                            duration_seconds=elapsed,
                        ),
                        kind,
                    )
                )

        for invocation in done:
            descriptor = pending_by_task[invocation]
            outcomes.append(self._settled(descriptor, invocation, kind))

        return outcomes

    def _settled(
        self, descriptor: ProviderDescriptor, invocation: asyncio.Task, kind: str
    ) -> ProviderOutcome:
        if invocation.cancelled():
            result: Union[RawResponse, AdapterError] = AdapterError(
                provider=descriptor.name,
                kind=FailureKind.TIMEOUT,
                message="Invocation cancelled",
            )
        else:
            error = invocation.exception()
            if error is not None:
                logger.error(
                    "provider_invocation_crashed",
                    provider=descriptor.name,
                    error=str(error),
                    error_type=type(error).__name__,
                )
                result = AdapterError(
                    provider=descriptor.name,
                    kind=FailureKind.NETWORK_FAILURE,
                    message=f"{type(error).__name__}: {error}",
                )
            else:
                result = invocation.result()
        return self._outcome(descriptor.name, result, kind)

    def _outcome(
        self,
        provider: str,
        result: Union[RawResponse, AdapterError],
        kind: str,
    ) -> ProviderOutcome:
        if isinstance(result, RawResponse):
            normalized = normalize(result, kind)
            if isinstance(normalized, ParseError):
                outcome = ProviderOutcome(
                    provider=provider,
                    failure=normalized,
                    duration_seconds=result.duration_seconds,
                )
            else:
                outcome = ProviderOutcome(
                    provider=provider,
                    normalized=normalized,
                    duration_seconds=result.duration_seconds,
                )
        else:
            outcome = ProviderOutcome(
                provider=provider,
                failure=result,
                duration_seconds=result.duration_seconds,
            )

        status = "ok" if outcome.succeeded else outcome.failure_kind.value
        logger.info(
            "provider_outcome",
            provider=provider,
            status=status,
            duration_seconds=round(outcome.duration_seconds, 3),
        )
        increment_counter(
            "provider_invocations_total",
            labels={"provider": provider, "outcome": status},
        )
        return outcome
