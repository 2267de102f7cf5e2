"""HTTP API for the consensus engine.

This module exposes extraction, evaluation, provider availability and
metrics endpoints.
"""

from multiai.api.server import app

__all__ = ["app"]
