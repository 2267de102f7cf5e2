"""
Multi-AI Consensus Engine

Dispatches question-extraction and answer-evaluation tasks to several LLM
providers in parallel and reconciles their replies into one consensus
result with a confidence and an agreement score.
"""

__version__ = "0.1.0"
