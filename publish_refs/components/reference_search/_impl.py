"""
ReferenceSearchService - Publish set discovery for replication.

Finds everything a content item needs on the publish side: the
structural template it is based on, and every resource its reference
providers point at that is unpublished or modified since last publish.

Key behaviors:
- Template expansion is additive, seed paths are never dropped
- References are deduplicated by path, first provider report wins
- Candidates are emitted in ascending path order
- Equal publish and modification times are not stale
- Missing resources contribute nothing and are not errors
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock

from publish_refs.domain.entities import PublishStatus, Reference, Resource
from publish_refs.rules.models import ProviderFailurePolicy, SearchRules

from .models import SearchError
from .ports import ReferenceProviderPort, ResourceResolverPort

logger = logging.getLogger(__name__)

# --- Configuration ---


@dataclass(frozen=True)
class SearchConfig:
    """Search configuration from rules."""

    content_node: str = "jcr:content"
    structure_node: str = "structure"
    provider_failures: ProviderFailurePolicy = "isolate"

    @classmethod
    def from_rules(cls, rules: SearchRules) -> SearchConfig:
        return cls(
            content_node=rules.content_node,
            structure_node=rules.structure_node,
            provider_failures=rules.provider_failures,
        )


DEFAULT_CONFIG = SearchConfig()


# --- Errors ---


class ProviderError(RuntimeError):
    """A reference provider failed and the policy is to propagate."""

    def __init__(self, provider: str, path: str, reason: str) -> None:
        super().__init__(f"Reference provider {provider} failed for {path}: {reason}")
        self.provider = provider
        self.path = path
        self.reason = reason


@dataclass
class SearchResult:
    """Result of a search run."""

    paths: list[str] = field(default_factory=list)
    errors: list[SearchError] = field(default_factory=list)


# --- Provider Registry ---


class ProviderRegistry:
    """
    Mutable set of reference providers.

    Providers may be bound and unbound while searches run; a search
    only ever iterates a snapshot.
    """

    def __init__(self, providers: Iterable[ReferenceProviderPort] = ()) -> None:
        self._lock = Lock()
        self._providers: list[ReferenceProviderPort] = list(providers)

    def register(self, provider: ReferenceProviderPort) -> None:
        with self._lock:
            self._providers.append(provider)

    def unregister(self, provider: ReferenceProviderPort) -> bool:
        """Remove one registration of the provider. False if it was not bound."""
        with self._lock:
            try:
                self._providers.remove(provider)
            except ValueError:
                return False
            return True

    def snapshot(self) -> tuple[ReferenceProviderPort, ...]:
        with self._lock:
            return tuple(self._providers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)


# --- Template Expansion ---


def template_paths(
    resolver: ResourceResolverPort,
    resource: Resource,
    config: SearchConfig = DEFAULT_CONFIG,
) -> list[str]:
    """
    Paths of the structural template a resource is, or is based on.

    Returns the template path followed by its structure child path when
    that child exists. Empty for anything without structure support.
    """
    template = resolver.as_template(resource)
    page = resolver.as_page(resource)
    if template is None and page is None:
        return []

    if page is not None:
        template = page.template

    if template is None or not template.has_structure_support:
        return []

    paths = [template.path]
    structure = resolver.get_child(template.path, config.structure_node)
    if structure is not None:
        paths.append(structure.path)
    return paths


def expand_paths(
    resolver: ResourceResolverPort,
    paths: Sequence[str] | None,
    config: SearchConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Additional paths required by the given ones. The input is left untouched."""
    extended: list[str] = []
    for path in paths or ():
        if not path:
            continue
        resource = resolver.get_resource(path)
        if resource is None:
            continue
        extended.extend(template_paths(resolver, resource, config))
    return extended


def dedupe_paths(paths: Iterable[str]) -> list[str]:
    """Drop repeated paths, keeping the first occurrence of each."""
    return list(dict.fromkeys(paths))


# --- Reference Merging ---


def merge_references(merged: dict[str, Reference], found: Iterable[Reference]) -> int:
    """
    Add references not yet known by path.

    A path reported again, even with another timestamp, keeps the
    reference seen first. Returns the number of new paths.
    """
    added = 0
    for reference in found:
        if reference.resource_path not in merged:
            merged[reference.resource_path] = reference
            added += 1
    return added


# --- Staleness Filter ---


def is_candidate(reference: Reference, status: PublishStatus | None) -> bool:
    """True if the reference is unpublished or was modified after its last publish."""
    if status is None or not status.published:
        return True
    last_published = status.last_published or 0
    return last_published < reference.last_modified


def _format_millis(millis: int | None) -> str:
    if millis is None:
        return "never"
    try:
        return datetime.fromtimestamp(millis / 1000, UTC).isoformat()
    except (ValueError, OverflowError, OSError):
        # Sentinels such as Long.MAX are beyond datetime's range
        return str(millis)


def filter_candidates(
    resolver: ResourceResolverPort,
    references: Mapping[str, Reference],
) -> list[str]:
    """Paths of the references that need publishing, in ascending path order."""
    candidates: list[str] = []
    for path in sorted(references):
        reference = references[path]
        status = resolver.get_publish_status(path)
        include = is_candidate(reference, status)

        logger.debug(
            "Considering reference at %s . Published: %s, outdated: %s "
            "( lastPublished: %s, lastModified: %s )",
            path,
            status is not None and status.published,
            status is not None and status.published and include,
            _format_millis(status.last_published if status else None),
            _format_millis(reference.last_modified),
        )

        if include:
            candidates.append(path)
    return candidates


# --- Reference Search Service ---


class ReferenceSearchService:
    """
    Reference search service.

    Stateless between calls; each search reads the content store and
    a snapshot of the provider registry.
    """

    def __init__(
        self,
        resolver: ResourceResolverPort,
        registry: ProviderRegistry | None = None,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialize service."""
        self._resolver = resolver
        self._registry = registry if registry is not None else ProviderRegistry()
        self._config = config or DEFAULT_CONFIG

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    def search(self, paths: Sequence[str] | None) -> SearchResult:
        """
        Collect the publish candidates for the given seed paths.

        Raises:
            ProviderError: a provider failed and the policy is "propagate".
        """
        result = SearchResult()
        if not paths:
            return result

        path_list = list(paths)
        path_list.extend(expand_paths(self._resolver, path_list, self._config))
        path_list = dedupe_paths(path_list)

        providers = self._registry.snapshot()
        merged: dict[str, Reference] = {}

        for path in path_list:
            if not path:
                continue
            resource = self._resolve_content(path)
            if resource is None:
                continue
            for provider in providers:
                result.errors.extend(self._collect(provider, resource, merged))

        result.paths = filter_candidates(self._resolver, merged)
        return result

    def get_publish_candidates(self, root_path: str) -> list[str]:
        """Publish candidates for a single content item."""
        return self.search([root_path]).paths

    def _resolve_content(self, path: str) -> Resource | None:
        # Page content lives below the content node
        resource = self._resolver.get_child(path, self._config.content_node)
        if resource is None:
            resource = self._resolver.get_resource(path)
        return resource

    def _collect(
        self,
        provider: ReferenceProviderPort,
        resource: Resource,
        merged: dict[str, Reference],
    ) -> list[SearchError]:
        name = type(provider).__name__
        try:
            found = list(provider.find_references(resource) or ())
        except Exception as e:
            return self._provider_failed("provider_failed", name, resource.path, e)

        invalid = [item for item in found if not isinstance(item, Reference)]
        if invalid:
            error = TypeError(
                f"expected Reference, got {type(invalid[0]).__name__}"
            )
            return self._provider_failed("provider_contract", name, resource.path, error)

        merge_references(merged, found)
        return []

    def _provider_failed(
        self,
        code: str,
        provider: str,
        path: str,
        cause: Exception,
    ) -> list[SearchError]:
        if self._config.provider_failures == "propagate":
            raise ProviderError(provider, path, str(cause)) from cause

        logger.error(
            "Reference provider %s failed for %s, continuing without it",
            provider,
            path,
            exc_info=cause,
        )
        return [
            SearchError(
                code=code,
                message=f"Reference provider {provider} failed: {cause}",
                path=path,
            )
        ]
