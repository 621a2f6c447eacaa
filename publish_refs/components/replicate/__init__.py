"""Replicate component - replicates a payload and its references, or requests replication."""

from ._impl import (
    DEFAULT_CONFIG,
    TYPE_JCR_PATH,
    TYPE_JCR_UUID,
    ExecutionResult,
    ReplicationConfig,
    ReplicationProcess,
    parse_versions,
    resolve_payload,
    version_label,
)
from .component import run
from .models import (
    ReplicateInput,
    ReplicateOutput,
    ReplicateValidationError,
    ReplicationOptions,
)
from .ports import (
    CandidateSearchPort,
    EventPort,
    PayloadResolverPort,
    PermissionPort,
    ReplicationError,
    ReplicatorPort,
    ResourceCollectionPort,
)

__all__ = [
    # Entry point
    "run",
    # Process
    "ReplicationProcess",
    "ReplicationConfig",
    "ExecutionResult",
    "DEFAULT_CONFIG",
    "TYPE_JCR_PATH",
    "TYPE_JCR_UUID",
    "parse_versions",
    "resolve_payload",
    "version_label",
    # Models
    "ReplicateInput",
    "ReplicateOutput",
    "ReplicateValidationError",
    "ReplicationOptions",
    # Ports
    "CandidateSearchPort",
    "PayloadResolverPort",
    "ResourceCollectionPort",
    "PermissionPort",
    "ReplicatorPort",
    "EventPort",
    "ReplicationError",
]
