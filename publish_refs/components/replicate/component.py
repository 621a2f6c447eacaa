"""
Replicate component - Publish a payload with its references.

Shell Layer - maps inputs onto the process and freezes the result.

Invariants:
- I1: Every path is either replicated or requested, never both
- I2: Nothing is replicated for an unresolved payload
- I3: The first replication failure ends the run
"""

from __future__ import annotations

from ._impl import ExecutionResult, ReplicationProcess
from .models import ReplicateInput, ReplicateOutput


def _convert_result(result: ExecutionResult) -> ReplicateOutput:
    return ReplicateOutput(
        path=result.path,
        replicated=tuple(result.replicated),
        requested=tuple(result.requested),
        errors=tuple(result.errors),
        success=not result.errors,
    )


def run(input_data: ReplicateInput, process: ReplicationProcess) -> ReplicateOutput:
    """Replicate the payload of a workflow item."""
    result = process.execute(
        payload=input_data.payload,
        user_id=input_data.user_id,
        payload_type=input_data.payload_type,
        action=input_data.action,
        versions=input_data.versions,
    )
    return _convert_result(result)
