"""Concurrent provider fan-out bounded by a task deadline."""

from multiai.orchestration.controller import OrchestrationController

__all__ = ["OrchestrationController"]
