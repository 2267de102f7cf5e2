"""
Multi-AI Consensus Service

Entry points of the engine: fan a task out to every available provider,
merge the replies and score the result.

Example:
    >>> service = MultiAIConsensusService.from_credentials(
    ...     google_api_key="AIza...",
    ...     anthropic_api_key="sk-ant-...",
    ... )
    >>> result = service.extract_consensus(page_png, page_number=3)
    >>> result.confidence, result.primary_provider
    (0.7, 'gemini')
"""

import asyncio
from typing import List, Optional

from multiai.config import DEFAULT_API_KEY_ENV, EngineConfig
from multiai.consensus.engine import ConsensusEngine
from multiai.consensus.models import ConsensusResult, kind_for_capability
from multiai.consensus.scoring import ScoringPolicy
from multiai.observability.logging import (
    bind_task_context,
    clear_correlation_id,
    get_logger,
    set_correlation_id,
)
from multiai.observability.metrics import increment_counter, record_histogram
from multiai.orchestration.controller import OrchestrationController
from multiai.providers.interfaces import (
    EvaluationTask,
    ExtractionTask,
    ProviderConfig,
    ProviderDescriptor,
    TaskRequest,
)
from multiai.providers.registry import ProviderRegistry, build_registry

logger = get_logger(__name__)


class MultiAIConsensusService:
    """
    Consensus over several LLM providers for question extraction and
    answer evaluation.

    Runtime provider failures never raise: they are reported per provider
    inside the ConsensusResult. Only setup defects raise ConfigurationError.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize the service.

        Args:
            registry: Provider registry (frozen by the caller)
            config: Engine configuration (uses defaults if None)
        """
        self.config = config if config is not None else EngineConfig()
        self._registry = registry
        self._controller = OrchestrationController(
            registry, cancel_grace_seconds=self.config.cancel_grace_seconds
        )
        self._engine = ConsensusEngine(self.config)
        self._scoring = ScoringPolicy(self.config)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "MultiAIConsensusService":
        """Build the service and its registry from an engine configuration."""
        return cls(build_registry(config.providers.values()), config)

    @classmethod
    def from_credentials(
        cls,
        google_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        config: Optional[EngineConfig] = None,
    ) -> "MultiAIConsensusService":
        """
        Build the service from explicit API keys.

        An omitted key marks that provider unavailable; it is then excluded
        from every fan-out. Model and transport settings are taken from
        config when it configures the provider.
        """
        config = config if config is not None else EngineConfig()
        keys = {
            "gemini": google_api_key,
            "openai": openai_api_key,
            "claude": anthropic_api_key,
        }

        providers = {}
        for name in DEFAULT_API_KEY_ENV:
            base = config.providers.get(name) or ProviderConfig(name=name)
            providers[name] = base.model_copy(update={"api_key": keys[name]})

        config = config.model_copy(update={"providers": providers})
        return cls.from_config(config)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def available_providers(self) -> List[ProviderDescriptor]:
        """Descriptors of every registered provider, available or not."""
        return self._registry.descriptors()

    async def run_async(self, task: TaskRequest) -> ConsensusResult:
        """
        Run one consensus task.

        Args:
            task: Extraction or evaluation task

        Returns:
            ConsensusResult

        Raises:
            ConfigurationError: If no available provider supports the task
        """
        capability = task.capability
        kind = kind_for_capability(capability)
        set_correlation_id()
        if isinstance(task, ExtractionTask):
            bind_task_context(kind=kind, page_number=task.page_number)
        else:
            bind_task_context(kind=kind, subject=task.subject)
        try:
            descriptors = self._registry.available_descriptors(capability)
            logger.info(
                "consensus_task_started",
                providers=[descriptor.name for descriptor in descriptors],
            )

            outcomes = await self._controller.run(
                task, descriptors, timeout=self.config.task_timeout_seconds
            )
            merged = self._engine.merge(outcomes, kind)
            score = self._scoring.score(descriptors, outcomes, capability)
            confidence = min(score.confidence, merged.confidence_ceiling)

            result = ConsensusResult(
                kind=kind,
                consensus=merged.consensus,
                per_provider={outcome.provider: outcome for outcome in outcomes},
                confidence=confidence,
                agreement_score=score.agreement_score,
                primary_provider=score.primary_provider,
                needs_review=self._scoring.needs_review(
                    confidence,
                    merged.consensus,
                    max_marks=task.max_marks if isinstance(task, EvaluationTask) else None,
                ),
            )

            successful = len(result.successful_providers)
            status = "consensus" if successful >= 2 else "single" if successful == 1 else "degraded"
            increment_counter("consensus_tasks_total", labels={"kind": kind, "status": status})
            record_histogram("consensus_confidence", confidence, labels={"kind": kind})
            logger.info(
                "consensus_task_completed",
                status=status,
                confidence=round(confidence, 4),
                agreement_score=round(result.agreement_score, 4),
                primary_provider=result.primary_provider,
                needs_review=result.needs_review,
            )
            return result
        finally:
            clear_correlation_id()

    async def extract_consensus_async(
        self,
        image_bytes: bytes,
        page_number: int,
        mime_type: str = "image/png",
    ) -> ConsensusResult:
        """
        Extract the questions of one page image by consensus.

        Args:
            image_bytes: Page image
            page_number: 1-based page number
            mime_type: Image MIME type

        Returns:
            ConsensusResult whose consensus is an ExtractedQuestionSet
        """
        task = ExtractionTask(
            image_bytes=image_bytes, page_number=page_number, mime_type=mime_type
        )
        return await self.run_async(task)

    async def evaluate_consensus_async(self, task: EvaluationTask) -> ConsensusResult:
        """
        Grade one student answer by consensus.

        Returns:
            ConsensusResult whose consensus is an AnswerEvaluation, or None
            when no provider succeeded
        """
        return await self.run_async(task)

    def extract_consensus(
        self,
        image_bytes: bytes,
        page_number: int,
        mime_type: str = "image/png",
    ) -> ConsensusResult:
        """Synchronous wrapper around extract_consensus_async."""
        return asyncio.run(self.extract_consensus_async(image_bytes, page_number, mime_type))

    def evaluate_consensus(self, task: EvaluationTask) -> ConsensusResult:
        """Synchronous wrapper around evaluate_consensus_async."""
        return asyncio.run(self.evaluate_consensus_async(task))
