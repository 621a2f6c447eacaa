"""
Replicate component - Port interfaces.

Permissions, transport and event delivery are owned by the host.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from publish_refs.components.reference_search import SearchResult
from publish_refs.domain.entities import ReplicationAction

from .models import ReplicationOptions


class ReplicationError(Exception):
    """Raised by a replicator when a replication cannot be carried out."""


class CandidateSearchPort(Protocol):
    """Publish set discovery."""

    def search(self, paths: Sequence[str] | None) -> SearchResult:
        """
        Paths to publish along with the given ones, and the providers that failed.

        Raises:
            ProviderError: the search was aborted.
        """
        ...


class PayloadResolverPort(Protocol):
    """Resolution of workflow payloads to repository paths."""

    def item_exists(self, path: str) -> bool:
        """Check that an item lives at the path."""
        ...

    def path_for_id(self, identifier: str) -> str | None:
        """Path of the node with the given identifier."""
        ...


class ResourceCollectionPort(Protocol):
    """Named groups of paths published together."""

    def get_paths(self, path: str) -> list[str]:
        """Member paths of the collections containing the path, empty when none."""
        ...


class PermissionPort(Protocol):
    """Replication privilege checks."""

    def can_replicate(self, user_id: str, path: str) -> bool:
        """Check if the user holds the replicate privilege on the path."""
        ...


class ReplicatorPort(Protocol):
    """Publish transport."""

    def replicate(
        self,
        user_id: str,
        action: ReplicationAction,
        path: str,
        options: ReplicationOptions | None,
    ) -> None:
        """Replicate the path. Raises ReplicationError on failure."""
        ...


class EventPort(Protocol):
    """Event bus."""

    def send_event(self, topic: str, properties: dict[str, Any]) -> None:
        """Deliver an event synchronously."""
        ...
