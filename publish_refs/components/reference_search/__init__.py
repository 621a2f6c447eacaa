"""
Reference search component - Publish set discovery for replication.
"""

from ._impl import (
    DEFAULT_CONFIG,
    ProviderError,
    ProviderRegistry,
    ReferenceSearchService,
    SearchConfig,
    SearchResult,
    dedupe_paths,
    expand_paths,
    filter_candidates,
    is_candidate,
    merge_references,
    template_paths,
)
from .component import run_candidates, run_search
from .models import CandidatesInput, SearchError, SearchInput, SearchOutput
from .ports import ReferenceProviderPort, ResourceResolverPort

__all__ = [
    # Entry points
    "run_search",
    "run_candidates",
    # Service
    "ReferenceSearchService",
    "ProviderRegistry",
    "SearchConfig",
    "SearchResult",
    "DEFAULT_CONFIG",
    "ProviderError",
    # Functional core
    "template_paths",
    "expand_paths",
    "dedupe_paths",
    "merge_references",
    "is_candidate",
    "filter_candidates",
    # Models
    "SearchInput",
    "CandidatesInput",
    "SearchOutput",
    "SearchError",
    # Ports
    "ResourceResolverPort",
    "ReferenceProviderPort",
]
