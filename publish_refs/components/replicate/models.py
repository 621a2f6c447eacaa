"""
Replicate component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass

from publish_refs.domain.entities import ReplicationAction

PayloadType = str  # "JCR_PATH" | "JCR_UUID"

# --- Validation Errors ---


@dataclass(frozen=True)
class ReplicateValidationError:
    """Replication run error."""

    code: str
    message: str
    path: str | None = None


# --- Options ---


@dataclass
class ReplicationOptions:
    """Per-path options handed to the replicator."""

    revision: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class ReplicateInput:
    """Input for replicating a workflow payload with its references."""

    payload: str | None
    user_id: str
    payload_type: PayloadType = "JCR_PATH"
    action: ReplicationAction | None = None
    # JSON object mapping paths to version labels
    versions: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class ReplicateOutput:
    """Output of a replication run."""

    path: str | None
    replicated: tuple[str, ...]
    requested: tuple[str, ...]
    errors: tuple[ReplicateValidationError, ...]
    success: bool
