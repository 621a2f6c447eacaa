"""
Reference search component - Port interfaces.

The content store and the reference providers belong to the host;
the search only reads through these protocols.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from publish_refs.domain.entities import Page, PublishStatus, Reference, Resource, Template


class ResourceResolverPort(Protocol):
    """Read-only view of the host content store."""

    def get_resource(self, path: str) -> Resource | None:
        """Resolve a path, None when nothing lives there."""
        ...

    def get_child(self, path: str, name: str) -> Resource | None:
        """Resolve the named child of a path."""
        ...

    def as_template(self, resource: Resource) -> Template | None:
        """Template view of the resource, if it is one."""
        ...

    def as_page(self, resource: Resource) -> Page | None:
        """Page view of the resource, if it is one."""
        ...

    def get_publish_status(self, path: str) -> PublishStatus | None:
        """Replication metadata, None when the resource carries none."""
        ...


class ReferenceProviderPort(Protocol):
    """Source of outbound references (assets, tags, configurations...)."""

    def find_references(self, resource: Resource) -> Iterable[Reference]:
        """Return the references held by the resource."""
        ...
