"""Projectionguard - at-most-once projection updates for Python.

This module provides the public API for applying events to read models
through optimistic, per-resource version tracking. Backend integrations live
under ``projectionguard.integrations`` and need their optional extras.
"""

from .domain import Event
from .exceptions import (
    IncompatibleBackendError,
    ProjectionError,
    ProtectedFieldModifiedError,
)
from .lifecycle import HasLifecycle
from .projections import ProjectionAdapter, ProjectionHandler
from .routing import handles_event
from .versioning import (
    EMPTY_VERSION,
    InMemoryData,
    InMemoryVersionStore,
    Mutation,
    VersionStore,
    decode_sequence,
    encode_sequence,
)

__all__ = [
    # Domain primitives
    "Event",
    # Projections
    "ProjectionAdapter",
    "ProjectionHandler",
    "handles_event",
    # Version tracking
    "EMPTY_VERSION",
    "InMemoryData",
    "InMemoryVersionStore",
    "Mutation",
    "VersionStore",
    "decode_sequence",
    "encode_sequence",
    # Lifecycle
    "HasLifecycle",
    # Errors
    "IncompatibleBackendError",
    "ProjectionError",
    "ProtectedFieldModifiedError",
]
