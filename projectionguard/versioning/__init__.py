"""Version tracking for projection resources.

This package provides:
- VersionStore: Backend-agnostic compare-and-swap contract
- InMemoryVersionStore: Process-local implementation
- encode_sequence / decode_sequence: Sequence-number version tokens
"""

from .memory import InMemoryData, InMemoryVersionStore
from .store import Mutation, VersionStore
from .tokens import EMPTY_VERSION, decode_sequence, encode_sequence

__all__ = [
    "EMPTY_VERSION",
    "InMemoryData",
    "InMemoryVersionStore",
    "Mutation",
    "VersionStore",
    "decode_sequence",
    "encode_sequence",
]
