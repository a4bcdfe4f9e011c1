"""CLI entrypoints for typeclosure commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Hashable

from .config import load_config
from .errors import ClassResolutionFailure, ConfigError, LinkageFailure, TypeNotPresent
from .logging import configure_logging, get_logger
from .models import ClosureResult
from .providers import MetadataProvider, create_provider, discover_providers, load_environment
from .walker import ClosureWalker

_LOGGER = get_logger("cli")

EXIT_UNRESOLVED = 1
EXIT_USAGE = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typeclosure",
        description="Force resolution of every type reachable from a root type.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .typeclosure.yml or the directory holding it (defaults to current directory).",
    )
    parser.add_argument(
        "--reproduce-supertype-anomaly",
        action="store_true",
        help="Read supertype signatures without walking the supertype itself.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    graph_parser = subparsers.add_parser(
        "check-graph",
        help="Check the closure of a type declared in a YAML graph file.",
    )
    _add_verbose_option(graph_parser, suppress_default=True)
    graph_parser.add_argument("graph", help="Path to the YAML graph file.")
    graph_parser.add_argument("root", help="Name of the root type in the graph.")

    python_parser = subparsers.add_parser(
        "check-python",
        help="Check the closure of importable Python classes.",
    )
    _add_verbose_option(python_parser, suppress_default=True)
    python_parser.add_argument(
        "targets",
        nargs="+",
        help="Classes to check, written as 'package.module:QualName'.",
    )
    python_parser.add_argument(
        "--ignore-module",
        action="append",
        default=[],
        dest="ignored_modules",
        help="Treat classes from this module (and its submodules) as leaf types.",
    )

    providers_parser = subparsers.add_parser(
        "providers",
        help="List the metadata providers available to this installation.",
    )
    _add_verbose_option(providers_parser, suppress_default=True)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for typeclosure commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(EXIT_USAGE, f"{exc}\n")
    configure_logging(
        verbose=bool(args.verbose), level=config.log_level, log_file=config.log_file
    )
    if config.walker.recursion_limit is not None:
        sys.setrecursionlimit(config.walker.recursion_limit)
    if args.reproduce_supertype_anomaly:
        config.walker.traverse_supertype = False

    enabled = config.providers.enabled or None
    try:
        if args.command == "providers":
            for name in discover_providers(enabled):
                print(name)
            return
        if args.command == "check-graph":
            environment = load_environment(Path(args.graph))
            provider = create_provider("registry", enabled, environment=environment)
            targets = [args.root]
        elif args.command == "check-python":
            ignored = [*config.python.ignored_modules, *args.ignored_modules]
            provider = create_provider("python", enabled, ignored_modules=ignored)
            targets = list(args.targets)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(EXIT_USAGE, "Unknown command\n")
        roots = [_resolve_root(provider, target) for target in targets]
    except (ConfigError, ValueError, TypeError) as exc:
        parser.exit(EXIT_USAGE, f"typeclosure {args.command} failed: {exc}\n")

    failed = False
    for target, root in zip(targets, roots):
        if isinstance(root, ClosureResult):
            result = root
        else:
            _LOGGER.debug("Walking closure of %s", provider.type_name(root))
            result = ClosureWalker(provider, config.walker.options()).check(root)
        if result.ok:
            print(f"{target}: closure resolved ({len(result.visited)} types)")
        else:
            failed = True
            failure = result.failure
            cause = f" ({failure.cause})" if failure.cause is not None else ""
            print(f"{target}: unresolvable type {failure.type_name}{cause}")
    if failed:
        parser.exit(EXIT_UNRESOLVED)


def _resolve_root(provider: MetadataProvider, target: str) -> Hashable:
    """Return the root descriptor, or a failed result when the root itself is missing."""
    try:
        return provider.resolve(target)
    except (LinkageFailure, TypeNotPresent) as exc:
        failure = ClassResolutionFailure(exc.type_name or target, exc)
        return ClosureResult(root=target, failure=failure)


if __name__ == "__main__":
    main(sys.argv[1:])
