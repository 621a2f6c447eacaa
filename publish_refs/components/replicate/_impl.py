"""
ReplicationProcess - Replicates a workflow payload with its references.

Key behaviors:
- The payload is given as a path or as a node identifier
- The publish set is the payload's candidates, then the payload or its collection members
- Paths the user may not replicate raise a deferred request event instead
- A version label from the workflow metadata becomes the revision to publish
- A failing replication or an aborted reference search ends the run
- Isolated provider failures are reported without stopping the run
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from publish_refs.components.reference_search import ProviderError
from publish_refs.domain.entities import ReplicationAction
from publish_refs.rules.models import Rules

from .models import PayloadType, ReplicateValidationError, ReplicationOptions
from .ports import (
    CandidateSearchPort,
    EventPort,
    PayloadResolverPort,
    PermissionPort,
    ReplicationError,
    ReplicatorPort,
    ResourceCollectionPort,
)

logger = logging.getLogger(__name__)

TYPE_JCR_PATH = "JCR_PATH"
TYPE_JCR_UUID = "JCR_UUID"

# --- Configuration ---


@dataclass(frozen=True)
class ReplicationConfig:
    """Replication configuration from rules."""

    event_topic: str = "com/day/cq/wcm/workflow/req/for/activation"
    default_action: ReplicationAction = ReplicationAction.ACTIVATE
    content_node: str = "jcr:content"

    @classmethod
    def from_rules(cls, rules: Rules) -> ReplicationConfig:
        return cls(
            event_topic=rules.replication.event_topic,
            default_action=rules.replication.default_action,
            content_node=rules.search.content_node,
        )


DEFAULT_CONFIG = ReplicationConfig()


# --- Version Labels ---


def parse_versions(raw: str | None) -> dict[str, str]:
    """
    Parse the versions metadata, a JSON object of path to label.

    Raises:
        ValueError: not a JSON object.
    """
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid versions metadata: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Versions metadata must be a JSON object")
    return {str(key): str(value) for key, value in data.items()}


def version_label(
    path: str | None,
    versions: dict[str, str],
    content_node: str = DEFAULT_CONFIG.content_node,
) -> str | None:
    """Label recorded for the path, or for its content node."""
    if not path:
        return None

    if path in versions:
        return versions[path]

    suffix = "/" + content_node
    if not path.endswith(suffix):
        path += suffix
    return versions.get(path)


# --- Payload ---


def resolve_payload(
    resolver: PayloadResolverPort,
    payload: str | None,
    payload_type: PayloadType,
) -> str | None:
    """Repository path of a workflow payload, None when it cannot be resolved."""
    if payload is None:
        return None
    if payload_type == TYPE_JCR_PATH:
        return payload if resolver.item_exists(payload) else None
    if payload_type == TYPE_JCR_UUID:
        return resolver.path_for_id(payload)
    return None


# --- Results ---


@dataclass
class ExecutionResult:
    """Result of a replication run."""

    path: str | None = None
    replicated: list[str] = field(default_factory=list)
    requested: list[str] = field(default_factory=list)
    errors: list[ReplicateValidationError] = field(default_factory=list)


# --- Replication Process ---


class ReplicationProcess:
    """
    Replication of a payload and everything it depends on.

    The action (activate, deactivate...) is chosen per call, falling
    back to the configured default.
    """

    def __init__(
        self,
        search: CandidateSearchPort,
        payloads: PayloadResolverPort,
        collections: ResourceCollectionPort,
        permissions: PermissionPort,
        replicator: ReplicatorPort,
        events: EventPort,
        config: ReplicationConfig | None = None,
    ) -> None:
        """Initialize process."""
        self._search = search
        self._payloads = payloads
        self._collections = collections
        self._permissions = permissions
        self._replicator = replicator
        self._events = events
        self._config = config or DEFAULT_CONFIG

    def prepare_options(self, options: ReplicationOptions) -> ReplicationOptions | None:
        """Hook for adjusting options before each replication."""
        return options

    def collect_paths(self, path: str, candidates: Sequence[str]) -> list[str]:
        """Publish candidates of the path, then the path itself or its collection members."""
        paths = list(candidates)
        # Outside any collection the payload is published on its own
        paths.extend(self._collections.get_paths(path) or [path])
        return list(dict.fromkeys(paths))

    def execute(
        self,
        payload: str | None,
        user_id: str,
        payload_type: PayloadType = TYPE_JCR_PATH,
        action: ReplicationAction | None = None,
        versions: str | None = None,
    ) -> ExecutionResult:
        """Replicate the payload, or request replication where not permitted."""
        result = ExecutionResult()
        action = action or self._config.default_action

        path = resolve_payload(self._payloads, payload, payload_type)
        if path is None:
            logger.warning(
                "Cannot replicate page or asset because path is null for payload %r (%s)",
                payload,
                payload_type,
            )
            result.errors.append(
                ReplicateValidationError(
                    code="payload_not_found",
                    message=f"Payload {payload!r} of type {payload_type} cannot be resolved",
                )
            )
            return result
        result.path = path

        try:
            version_map = parse_versions(versions)
        except ValueError as e:
            result.errors.append(
                ReplicateValidationError(code="invalid_versions", message=str(e), path=path)
            )
            return result

        try:
            search = self._search.search([path])
        except ProviderError as e:
            logger.error("Reference search for %s aborted: %s", path, e)
            result.errors.append(
                ReplicateValidationError(code="search_aborted", message=str(e), path=e.path)
            )
            return result

        # Isolated provider failures do not stop the run but fail its outcome
        result.errors.extend(
            ReplicateValidationError(code=error.code, message=error.message, path=error.path)
            for error in search.errors
        )

        for a_path in self.collect_paths(path, search.paths):
            if not self._permissions.can_replicate(user_id, a_path):
                self._request_replication(user_id, action, a_path)
                result.requested.append(a_path)
                continue

            options = ReplicationOptions(
                revision=version_label(a_path, version_map, self._config.content_node)
            )
            try:
                self._replicator.replicate(user_id, action, a_path, self.prepare_options(options))
            except ReplicationError as e:
                logger.error("Replication of %s failed: %s", a_path, e)
                result.errors.append(
                    ReplicateValidationError(
                        code="replication_failed",
                        message=str(e),
                        path=a_path,
                    )
                )
                return result
            result.replicated.append(a_path)

        return result

    def _request_replication(self, user_id: str, action: ReplicationAction, path: str) -> None:
        logger.debug(
            "%s is not allowed to replicate this page/asset %s. "
            "Issuing request for 'replication'",
            user_id,
            path,
        )
        properties: dict[str, Any] = {
            "path": path,
            "replicationType": action.value,
            "userId": user_id,
        }
        self._events.send_event(self._config.event_topic, properties)
