"""Engine entry points for extraction and evaluation consensus."""

from multiai.service.consensus_service import MultiAIConsensusService

__all__ = ["MultiAIConsensusService"]
