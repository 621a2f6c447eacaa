"""
Reference search component - Publish set discovery.

Shell Layer - converts service results into frozen outputs.

Invariants:
- I1: Each candidate path appears at most once
- I2: Candidates are ordered by path
- I3: A reference is a candidate unless published at or after its last modification
- I4: Missing resources are skipped silently
"""

from __future__ import annotations

from ._impl import ProviderError, ReferenceSearchService, SearchResult
from .models import CandidatesInput, SearchError, SearchInput, SearchOutput


def _convert_result(result: SearchResult) -> SearchOutput:
    return SearchOutput(
        paths=tuple(result.paths),
        errors=tuple(result.errors),
        success=not result.errors,
    )


def run_search(
    input_data: SearchInput,
    service: ReferenceSearchService,
) -> SearchOutput:
    """Search publish candidates for the seed paths."""
    try:
        result = service.search(input_data.paths)
    except ProviderError as e:
        return SearchOutput(
            paths=(),
            errors=(SearchError(code="search_aborted", message=str(e), path=e.path),),
            success=False,
        )
    return _convert_result(result)


def run_candidates(
    input_data: CandidatesInput,
    service: ReferenceSearchService,
) -> SearchOutput:
    """Publish candidates of a single root path."""
    return run_search(SearchInput(paths=(input_data.root_path,)), service)
