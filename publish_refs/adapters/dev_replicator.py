"""
Dev Replication Adapters.

Log replications and events instead of delivering them.
Used for local development and testing.

Key behaviors:
- Records every call in memory for assertions
- Never contacts a publish instance
- Permissions come from a static allow list
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from publish_refs.components.replicate import ReplicationOptions
from publish_refs.domain.entities import ReplicationAction

logger = logging.getLogger(__name__)


@dataclass
class ReplicationRecord:
    """Record of a logged replication."""

    user_id: str
    action: ReplicationAction
    path: str
    revision: str | None
    logged_at: datetime


@dataclass
class DevReplicator:
    """Replicator that logs instead of publishing. Implements ReplicatorPort."""

    replications: list[ReplicationRecord] = field(default_factory=list)
    log_level: int = logging.INFO

    def replicate(
        self,
        user_id: str,
        action: ReplicationAction,
        path: str,
        options: ReplicationOptions | None,
    ) -> None:
        revision = options.revision if options else None
        self.replications.append(
            ReplicationRecord(
                user_id=user_id,
                action=action,
                path=path,
                revision=revision,
                logged_at=datetime.now(UTC),
            )
        )
        logger.log(
            self.log_level,
            "[DEV REPLICATION] %s %s as %s (revision: %s)",
            action.value,
            path,
            user_id,
            revision or "latest",
        )


@dataclass
class DevEventBus:
    """Event bus that logs and keeps events. Implements EventPort."""

    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def send_event(self, topic: str, properties: dict[str, Any]) -> None:
        self.events.append((topic, dict(properties)))
        logger.info("[DEV EVENT] %s %s", topic, properties)


@dataclass
class AllowListPermissions:
    """
    Static replicate privileges. Implements PermissionPort.

    A user may replicate a path when one of the user's prefixes
    matches it.
    """

    grants: dict[str, list[str]] = field(default_factory=dict)

    def can_replicate(self, user_id: str, path: str) -> bool:
        for prefix in self.grants.get(user_id, []):
            base = prefix.rstrip("/")
            if path == base or path.startswith(base + "/") or prefix == "/":
                return True
        return False
