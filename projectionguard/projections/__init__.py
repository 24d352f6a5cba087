"""Projection infrastructure for at-most-once read model updates.

This package provides:
- ProjectionHandler: Base class for a projection's business logic
- ProjectionAdapter: Wrapper applying events through a version store
"""

from .adapter import ProjectionAdapter
from .handler import ProjectionHandler

__all__ = [
    "ProjectionAdapter",
    "ProjectionHandler",
]
