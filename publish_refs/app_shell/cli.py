import argparse
import logging
import sys
from pathlib import Path

from publish_refs.adapters.dev_replicator import AllowListPermissions, DevEventBus, DevReplicator
from publish_refs.adapters.memory_store import InMemoryContentStore, StaticReferenceProvider, load_tree
from publish_refs.components.reference_search import (
    ProviderRegistry,
    ReferenceSearchService,
    SearchConfig,
    SearchInput,
    run_search,
)
from publish_refs.components.replicate import (
    TYPE_JCR_PATH,
    TYPE_JCR_UUID,
    ReplicateInput,
    ReplicationConfig,
    ReplicationProcess,
)
from publish_refs.components.replicate import run as run_replicate
from publish_refs.domain.entities import ReplicationAction
from publish_refs.rules.loader import load_rules
from publish_refs.rules.models import Rules

logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"


def get_rules(path: str | None) -> Rules:
    if path is None:
        if not Path(RULES_PATH).exists():
            return Rules()
        path = RULES_PATH
    if not Path(path).exists():
        logger.error(f"Rules file {path} not found.")
        sys.exit(1)
    try:
        return load_rules(Path(path))
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)


def get_store(path: str) -> InMemoryContentStore:
    try:
        return load_tree(Path(path))
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)


def build_search(store: InMemoryContentStore, rules: Rules) -> ReferenceSearchService:
    return ReferenceSearchService(
        resolver=store,
        registry=ProviderRegistry([StaticReferenceProvider(store)]),
        config=SearchConfig.from_rules(rules.search),
    )


def handle_candidates(args: argparse.Namespace) -> int:
    rules = get_rules(args.rules)
    store = get_store(args.tree)
    result = run_search(SearchInput(paths=tuple(args.paths)), build_search(store, rules))

    for path in result.paths:
        print(path)
    for error in result.errors:
        logger.warning(f"{error.code}: {error.message}")
    return 0 if result.success else 1


def handle_replicate(args: argparse.Namespace) -> int:
    rules = get_rules(args.rules)
    store = get_store(args.tree)
    replicator = DevReplicator()
    events = DevEventBus()

    process = ReplicationProcess(
        search=build_search(store, rules),
        payloads=store,
        collections=store,
        permissions=AllowListPermissions({args.user: args.grant or []}),
        replicator=replicator,
        events=events,
        config=ReplicationConfig.from_rules(rules),
    )
    result = run_replicate(
        ReplicateInput(
            payload=args.payload,
            user_id=args.user,
            payload_type=TYPE_JCR_UUID if args.uuid else TYPE_JCR_PATH,
            action=ReplicationAction(args.action) if args.action else None,
            versions=args.versions,
        ),
        process,
    )

    for path in result.replicated:
        print(f"replicated {path}")
    for path in result.requested:
        print(f"requested  {path}")
    for error in result.errors:
        logger.error(f"{error.code}: {error.message}")
    return 0 if result.success else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish reference search CLI")
    parser.add_argument("--rules", help=f"Rules file (default: {RULES_PATH} if present)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # candidates
    candidates_parser = subparsers.add_parser(
        "candidates", help="List the paths to publish along with the given ones"
    )
    candidates_parser.add_argument("tree", help="Content tree YAML file")
    candidates_parser.add_argument("paths", nargs="+", help="Seed paths")

    # replicate
    replicate_parser = subparsers.add_parser(
        "replicate", help="Replicate a payload against dev adapters"
    )
    replicate_parser.add_argument("tree", help="Content tree YAML file")
    replicate_parser.add_argument("payload", help="Payload path, or node id with --uuid")
    replicate_parser.add_argument("--user", required=True, help="Replicating user id")
    replicate_parser.add_argument(
        "--grant", action="append", help="Path prefix the user may replicate (repeatable)"
    )
    replicate_parser.add_argument(
        "--action",
        choices=[action.value for action in ReplicationAction],
        help="Replication action (default from rules)",
    )
    replicate_parser.add_argument("--uuid", action="store_true", help="Payload is a node id")
    replicate_parser.add_argument("--versions", help="JSON object of path to version label")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "candidates":
        return handle_candidates(args)
    if args.command == "replicate":
        return handle_replicate(args)
    parser.error(f"Unknown command {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
