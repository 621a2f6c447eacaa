"""
Replicate component unit tests.

Tests for payload resolution, permission-based dispatch, version labels
and failure handling.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import pytest

from publish_refs.components.reference_search import (
    ProviderRegistry,
    ReferenceSearchService,
    SearchConfig,
    SearchError,
    SearchResult,
)
from publish_refs.components.replicate import (
    TYPE_JCR_UUID,
    ReplicateInput,
    ReplicationConfig,
    ReplicationError,
    ReplicationOptions,
    ReplicationProcess,
    parse_versions,
    run,
    version_label,
)
from publish_refs.domain.entities import Reference, ReplicationAction, Resource
from publish_refs.rules.models import Rules

TOPIC = "com/day/cq/wcm/workflow/req/for/activation"

# --- Mock Implementations ---


class MockSearch:
    """Fixed publish candidates per root path."""

    def __init__(self, candidates: dict[str, list[str]] | None = None) -> None:
        self.candidates = candidates or {}
        self.errors: list[SearchError] = []

    def search(self, paths: Sequence[str] | None) -> SearchResult:
        found = [c for path in paths or () for c in self.candidates.get(path, [])]
        return SearchResult(paths=found, errors=list(self.errors))


class MockPayloads:
    """Known repository items and their identifiers."""

    def __init__(self, paths: set[str], ids: dict[str, str] | None = None) -> None:
        self.paths = paths
        self.ids = ids or {}

    def item_exists(self, path: str) -> bool:
        return path in self.paths

    def path_for_id(self, identifier: str) -> str | None:
        return self.ids.get(identifier)


class MockCollections:
    def __init__(self, members: dict[str, list[str]] | None = None) -> None:
        self.members = members or {}

    def get_paths(self, path: str) -> list[str]:
        return list(self.members.get(path, []))


class MockPermissions:
    def __init__(self, allowed: set[str] | None = None, deny: set[str] | None = None) -> None:
        self.allowed = allowed
        self.deny = deny or set()

    def can_replicate(self, user_id: str, path: str) -> bool:
        if path in self.deny:
            return False
        return self.allowed is None or path in self.allowed


class MockReplicator:
    """Records replications, failing on selected paths."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, ReplicationAction, str, ReplicationOptions | None]] = []

    def replicate(
        self,
        user_id: str,
        action: ReplicationAction,
        path: str,
        options: ReplicationOptions | None,
    ) -> None:
        if path in self.fail_on:
            raise ReplicationError(f"Agent unreachable for {path}")
        self.calls.append((user_id, action, path, options))

    @property
    def paths(self) -> list[str]:
        return [call[2] for call in self.calls]


class MockEvents:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def send_event(self, topic: str, properties: dict[str, Any]) -> None:
        self.events.append((topic, properties))


# --- Fixtures ---


@pytest.fixture
def search() -> MockSearch:
    return MockSearch(
        {"/content/site/en": ["/content/dam/logo.png", "/content/dam/hero.jpg"]}
    )


@pytest.fixture
def payloads() -> MockPayloads:
    return MockPayloads({"/content/site/en"}, ids={"5d0c1f0e": "/content/site/en"})


@pytest.fixture
def collections() -> MockCollections:
    return MockCollections()


@pytest.fixture
def permissions() -> MockPermissions:
    return MockPermissions()


@pytest.fixture
def replicator() -> MockReplicator:
    return MockReplicator()


@pytest.fixture
def events() -> MockEvents:
    return MockEvents()


@pytest.fixture
def process(
    search: MockSearch,
    payloads: MockPayloads,
    collections: MockCollections,
    permissions: MockPermissions,
    replicator: MockReplicator,
    events: MockEvents,
) -> ReplicationProcess:
    return ReplicationProcess(
        search=search,
        payloads=payloads,
        collections=collections,
        permissions=permissions,
        replicator=replicator,
        events=events,
    )


# --- Replication Tests ---


class TestReplicate:
    """Test replication of a payload."""

    def test_replicates_references_then_payload(
        self, process: ReplicationProcess, replicator: MockReplicator
    ) -> None:
        result = run(ReplicateInput(payload="/content/site/en", user_id="alice"), process)

        assert result.success is True
        assert result.path == "/content/site/en"
        assert replicator.paths == [
            "/content/dam/logo.png",
            "/content/dam/hero.jpg",
            "/content/site/en",
        ]
        assert result.replicated == tuple(replicator.paths)
        assert result.requested == ()
        assert all(call[1] is ReplicationAction.ACTIVATE for call in replicator.calls)
        assert all(call[0] == "alice" for call in replicator.calls)

    def test_explicit_action(
        self, process: ReplicationProcess, replicator: MockReplicator
    ) -> None:
        run(
            ReplicateInput(
                payload="/content/site/en",
                user_id="alice",
                action=ReplicationAction.DEACTIVATE,
            ),
            process,
        )

        assert {call[1] for call in replicator.calls} == {ReplicationAction.DEACTIVATE}

    def test_default_action_from_config(
        self,
        search: MockSearch,
        payloads: MockPayloads,
        collections: MockCollections,
        permissions: MockPermissions,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        process = ReplicationProcess(
            search,
            payloads,
            collections,
            permissions,
            replicator,
            events,
            ReplicationConfig(default_action=ReplicationAction.DELETE),
        )

        process.execute("/content/site/en", "alice")

        assert {call[1] for call in replicator.calls} == {ReplicationAction.DELETE}

    def test_collection_members(
        self,
        process: ReplicationProcess,
        collections: MockCollections,
        replicator: MockReplicator,
    ) -> None:
        """Collection members are published instead of the lone payload."""
        collections.members["/content/site/en"] = [
            "/content/site/en",
            "/content/site/fr",
            "/content/dam/logo.png",
        ]

        result = run(ReplicateInput(payload="/content/site/en", user_id="alice"), process)

        assert replicator.paths == [
            "/content/dam/logo.png",
            "/content/dam/hero.jpg",
            "/content/site/en",
            "/content/site/fr",
        ]
        assert result.success is True

    def test_uuid_payload(self, process: ReplicationProcess, replicator: MockReplicator) -> None:
        result = run(
            ReplicateInput(payload="5d0c1f0e", user_id="alice", payload_type=TYPE_JCR_UUID),
            process,
        )

        assert result.path == "/content/site/en"
        assert "/content/site/en" in replicator.paths

    @pytest.mark.parametrize(
        ("payload", "payload_type"),
        [
            ("/content/missing", "JCR_PATH"),
            ("unknown-id", "JCR_UUID"),
            ("/content/site/en", "URL"),
            (None, "JCR_PATH"),
        ],
    )
    def test_unresolved_payload(
        self,
        process: ReplicationProcess,
        replicator: MockReplicator,
        events: MockEvents,
        payload: str | None,
        payload_type: str,
    ) -> None:
        result = run(
            ReplicateInput(payload=payload, user_id="alice", payload_type=payload_type),
            process,
        )

        assert result.success is False
        assert result.path is None
        assert result.errors[0].code == "payload_not_found"
        assert replicator.calls == []
        assert events.events == []


class TestDeferredRequests:
    """Test replication requests for paths the user may not publish."""

    def test_denied_path_sends_event(
        self,
        process: ReplicationProcess,
        permissions: MockPermissions,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        permissions.deny = {"/content/dam/hero.jpg"}

        result = run(ReplicateInput(payload="/content/site/en", user_id="bob"), process)

        assert result.success is True
        assert result.requested == ("/content/dam/hero.jpg",)
        assert result.replicated == ("/content/dam/logo.png", "/content/site/en")
        assert events.events == [
            (
                TOPIC,
                {
                    "path": "/content/dam/hero.jpg",
                    "replicationType": "Activate",
                    "userId": "bob",
                },
            )
        ]

    def test_everything_denied(
        self,
        process: ReplicationProcess,
        permissions: MockPermissions,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        permissions.allowed = set()

        result = run(
            ReplicateInput(
                payload="/content/site/en",
                user_id="bob",
                action=ReplicationAction.DEACTIVATE,
            ),
            process,
        )

        assert replicator.calls == []
        assert len(result.requested) == 3
        assert {props["replicationType"] for _, props in events.events} == {"Deactivate"}

    def test_custom_topic(
        self,
        search: MockSearch,
        payloads: MockPayloads,
        collections: MockCollections,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        process = ReplicationProcess(
            search,
            payloads,
            collections,
            MockPermissions(allowed=set()),
            replicator,
            events,
            ReplicationConfig(event_topic="acme/replication/request"),
        )

        process.execute("/content/site/en", "bob")

        assert {topic for topic, _ in events.events} == {"acme/replication/request"}


class TestVersions:
    """Test version labels passed to the replicator."""

    def test_revision_from_versions(
        self, process: ReplicationProcess, replicator: MockReplicator
    ) -> None:
        versions = '{"/content/site/en/jcr:content": "1.3", "/content/dam/logo.png": "2.0"}'

        run(
            ReplicateInput(payload="/content/site/en", user_id="alice", versions=versions),
            process,
        )

        revisions = {call[2]: call[3].revision for call in replicator.calls if call[3]}
        assert revisions == {
            "/content/dam/logo.png": "2.0",
            "/content/dam/hero.jpg": None,
            "/content/site/en": "1.3",
        }

    @pytest.mark.parametrize("versions", ["{not json", "[1, 2]"])
    def test_invalid_versions(
        self,
        process: ReplicationProcess,
        replicator: MockReplicator,
        versions: str,
    ) -> None:
        result = run(
            ReplicateInput(payload="/content/site/en", user_id="alice", versions=versions),
            process,
        )

        assert result.success is False
        assert result.errors[0].code == "invalid_versions"
        assert replicator.calls == []

    def test_prepare_options_hook(
        self,
        search: MockSearch,
        payloads: MockPayloads,
        collections: MockCollections,
        permissions: MockPermissions,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        class PinnedProcess(ReplicationProcess):
            def prepare_options(self, options: ReplicationOptions) -> ReplicationOptions | None:
                options.revision = options.revision or "pinned"
                return options

        process = PinnedProcess(search, payloads, collections, permissions, replicator, events)

        process.execute("/content/site/en", "alice")

        assert {call[3].revision for call in replicator.calls if call[3]} == {"pinned"}


class TestVersionLabel:
    """Test version label lookup."""

    def test_empty_path(self) -> None:
        assert version_label("", {"": "1.0"}) is None
        assert version_label(None, {}) is None

    def test_exact_path(self) -> None:
        assert version_label("/content/a", {"/content/a": "1.0"}) == "1.0"

    def test_content_node_fallback(self) -> None:
        assert version_label("/content/a", {"/content/a/jcr:content": "1.1"}) == "1.1"

    def test_content_node_not_doubled(self) -> None:
        versions = {"/content/a/jcr:content": "1.2"}
        assert version_label("/content/a/jcr:content", versions) == "1.2"
        assert version_label("/content/b/jcr:content", versions) is None

    def test_parse_versions(self) -> None:
        assert parse_versions(None) == {}
        assert parse_versions("") == {}
        assert parse_versions('{"/content/a": 3}') == {"/content/a": "3"}


class TestReplicationFailure:
    """Test aborting on replication failure."""

    def test_failure_aborts_run(
        self,
        search: MockSearch,
        payloads: MockPayloads,
        collections: MockCollections,
        permissions: MockPermissions,
        events: MockEvents,
    ) -> None:
        replicator = MockReplicator(fail_on={"/content/dam/hero.jpg"})
        process = ReplicationProcess(
            search, payloads, collections, permissions, replicator, events
        )

        result = run(ReplicateInput(payload="/content/site/en", user_id="alice"), process)

        assert result.success is False
        assert result.replicated == ("/content/dam/logo.png",)
        assert result.errors[0].code == "replication_failed"
        assert result.errors[0].path == "/content/dam/hero.jpg"
        assert "/content/site/en" not in replicator.paths


class TestSearchFailures:
    """Test reference search failures seen by the replication run."""

    def test_isolated_provider_failure_reported(
        self,
        process: ReplicationProcess,
        search: MockSearch,
        replicator: MockReplicator,
    ) -> None:
        """Discovered paths are replicated but the run is not successful."""
        search.errors.append(
            SearchError(
                code="provider_failed",
                message="Reference provider TagProvider failed: timeout",
                path="/content/site/en",
            )
        )

        result = run(ReplicateInput(payload="/content/site/en", user_id="alice"), process)

        assert result.success is False
        assert [error.code for error in result.errors] == ["provider_failed"]
        assert result.errors[0].path == "/content/site/en"
        assert replicator.paths == [
            "/content/dam/logo.png",
            "/content/dam/hero.jpg",
            "/content/site/en",
        ]

    def test_aborted_search_replicates_nothing(
        self,
        payloads: MockPayloads,
        collections: MockCollections,
        permissions: MockPermissions,
        replicator: MockReplicator,
        events: MockEvents,
    ) -> None:
        class FailingProvider:
            def find_references(self, resource: Resource) -> Iterable[Reference]:
                raise RuntimeError("boom")

        class ContentStore:
            def get_resource(self, path: str) -> Resource | None:
                return Resource(path=path) if path == "/content/site/en" else None

            def get_child(self, path: str, name: str) -> Resource | None:
                return None

            def as_template(self, resource: Resource) -> None:
                return None

            def as_page(self, resource: Resource) -> None:
                return None

            def get_publish_status(self, path: str) -> None:
                return None

        search = ReferenceSearchService(
            ContentStore(),
            ProviderRegistry([FailingProvider()]),
            SearchConfig(provider_failures="propagate"),
        )
        process = ReplicationProcess(
            search, payloads, collections, permissions, replicator, events
        )

        result = run(ReplicateInput(payload="/content/site/en", user_id="alice"), process)

        assert result.success is False
        assert result.path == "/content/site/en"
        assert result.errors[0].code == "search_aborted"
        assert result.errors[0].path == "/content/site/en"
        assert "boom" in result.errors[0].message
        assert replicator.calls == []
        assert events.events == []
        assert result.replicated == ()
        assert result.requested == ()


class TestReplicationConfig:
    def test_from_rules(self) -> None:
        rules = Rules.model_validate(
            {
                "search": {"content_node": "content"},
                "replication": {"event_topic": "t", "default_action": "Deactivate"},
            }
        )

        config = ReplicationConfig.from_rules(rules)

        assert config.event_topic == "t"
        assert config.default_action is ReplicationAction.DEACTIVATE
        assert config.content_node == "content"
