"""
In-memory content store adapter.

Serves a content tree held in plain dicts, typically loaded from a
YAML file. Used by the CLI and for local development.

Tree format:

    resources:
      /content/site/en:
        type: page
        template: /conf/site/templates/article
        id: 5d0c1f0e-...
      /content/site/en/jcr:content:
        references:
          - path: /content/dam/logo.png
            last_modified: 1700000000000
      /conf/site/templates/article:
        type: template
        structure: true
      /content/dam/logo.png:
        status: {activated: true, last_published: 1690000000000}
    collections:
      - [/content/site/en, /content/site/fr]

Implements ResourceResolverPort, PayloadResolverPort and ResourceCollectionPort.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from publish_refs.domain.entities import Page, PublishStatus, Reference, Resource, Template


class InMemoryContentStore:
    """Content tree keyed by absolute path."""

    def __init__(
        self,
        resources: dict[str, dict[str, Any]] | None = None,
        collections: list[list[str]] | None = None,
    ) -> None:
        self._nodes: dict[str, dict[str, Any]] = {
            path: dict(node or {}) for path, node in (resources or {}).items()
        }
        self._collections = [list(members) for members in collections or []]

    def node(self, path: str) -> dict[str, Any] | None:
        return self._nodes.get(path)

    # --- ResourceResolverPort ---

    def get_resource(self, path: str) -> Resource | None:
        node = self._nodes.get(path)
        if node is None:
            return None
        return Resource(path=path, resource_type=node.get("type"))

    def get_child(self, path: str, name: str) -> Resource | None:
        return self.get_resource(f"{path.rstrip('/')}/{name}")

    def as_template(self, resource: Resource) -> Template | None:
        return self._template_at(resource.path)

    def as_page(self, resource: Resource) -> Page | None:
        node = self._nodes.get(resource.path)
        if node is None or node.get("type") != "page":
            return None
        template_path = node.get("template")
        template = self._template_at(template_path) if template_path else None
        return Page(path=resource.path, template=template)

    def get_publish_status(self, path: str) -> PublishStatus | None:
        node = self._nodes.get(path)
        if node is None or node.get("status") is None:
            return None
        return PublishStatus.model_validate(node["status"])

    def _template_at(self, path: str) -> Template | None:
        node = self._nodes.get(path)
        if node is None or node.get("type") != "template":
            return None
        return Template(path=path, has_structure_support=bool(node.get("structure", False)))

    # --- PayloadResolverPort ---

    def item_exists(self, path: str) -> bool:
        return path in self._nodes

    def path_for_id(self, identifier: str) -> str | None:
        return next(
            (path for path, node in self._nodes.items() if node.get("id") == identifier),
            None,
        )

    # --- ResourceCollectionPort ---

    def get_paths(self, path: str) -> list[str]:
        paths: list[str] = []
        for members in self._collections:
            if path in members:
                paths.extend(members)
        return list(dict.fromkeys(paths))


class StaticReferenceProvider:
    """Reference provider serving the references declared in the tree."""

    def __init__(self, store: InMemoryContentStore) -> None:
        self._store = store

    def find_references(self, resource: Resource) -> Iterable[Reference]:
        node = self._store.node(resource.path) or {}
        return [
            Reference(
                resource_path=entry["path"],
                last_modified=int(entry["last_modified"]),
                name=entry.get("name", ""),
                type=entry.get("type", ""),
            )
            for entry in node.get("references", [])
        ]


def load_tree(path: Path) -> InMemoryContentStore:
    """
    Load a content tree file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Content tree not found at: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML syntax in content tree: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Content tree must be a mapping")

    return InMemoryContentStore(
        resources=data.get("resources") or {},
        collections=data.get("collections") or [],
    )
