"""
Reference search component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Errors ---


@dataclass(frozen=True)
class SearchError:
    """A reference provider that could not contribute to a search."""

    code: str
    message: str
    path: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SearchInput:
    """Input for a reference search over one or more seed paths."""

    paths: tuple[str, ...] | None = None


@dataclass(frozen=True)
class CandidatesInput:
    """Input for listing the publish candidates of a single root path."""

    root_path: str


# --- Output Models ---


@dataclass(frozen=True)
class SearchOutput:
    """Ordered, duplicate-free publish candidates."""

    paths: tuple[str, ...]
    errors: tuple[SearchError, ...]
    success: bool
