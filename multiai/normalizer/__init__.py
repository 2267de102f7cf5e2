"""
Response normalization for provider replies.

Components:
    - schemas: Wire models for the extraction and evaluation JSON contracts
    - decoder: Fence stripping, strict decode and ParseError reporting
"""

from multiai.consensus.models import ParseError
from multiai.normalizer.decoder import (
    ResponseParseError,
    decode,
    normalize,
    strip_wrapping,
)

__all__ = [
    "ParseError",
    "ResponseParseError",
    "decode",
    "normalize",
    "strip_wrapping",
]
