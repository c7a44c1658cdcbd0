"""Command line entry point: validate one commit of a local repository."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from logging_config import configure_logging

from .client import ProfileServiceClient
from .config import GateConfig, load_gate_config, validate_gate_config
from .delegated import DelegatedValidator
from .directory import StaticDirectory
from .errors import ConfigurationError, EcaGateError, TransportError
from .git import read_commit
from .identity import account_identity, author_identity
from .models import CommitInfo, Identity, ValidationOutcome
from .resolver import CandidateResolver
from .validator import CommitEvaluator, CommitValidator, RemoteProfileChecks

LOGGER = logging.getLogger(__name__)

EXIT_PASSED = 0
EXIT_REJECTED = 1
EXIT_CONFIG = 2
EXIT_UNVERIFIED = 3

COULD_NOT_VERIFY = "Could not verify the contributor agreement status; please try again later."


def build_evaluator(
    config: GateConfig,
    directory: StaticDirectory,
    *,
    repo_url: str,
) -> Tuple[CommitEvaluator, Callable[[], None]]:
    """Wire the configured strategy; the second item releases its resources."""

    client = ProfileServiceClient.from_config(config)
    if config.mode == "delegated":
        evaluator: CommitEvaluator = DelegatedValidator(
            client,
            directory,
            repo_url=repo_url,
            provider=config.provider,
            strict_mode=config.strict_mode,
            documentation=config.documentation_url,
        )
        return evaluator, client.close

    resolver = CandidateResolver(client, max_workers=config.max_workers)
    evaluator = CommitValidator(RemoteProfileChecks(directory, resolver), documentation=config.documentation_url)

    def _close() -> None:
        resolver.close()
        client.close()

    return evaluator, _close


def resolve_pusher(commit: CommitInfo, directory: StaticDirectory, pusher: Optional[str]) -> Identity:
    if not pusher:
        return author_identity(commit.committer, directory)
    account = directory.resolve_local_account(pusher)
    if account is None:
        return Identity(display_name=pusher, primary_email="", username=pusher)
    return account_identity(account)


def render(outcome: ValidationOutcome) -> List[str]:
    lines: List[str] = []
    for entry in outcome.entries:
        prefix = "ERROR: " if entry.is_error else ""
        lines.extend(f"{prefix}{line}" if line else "" for line in entry.text.splitlines() or [""])
    return lines


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ecagate", description="Contributor agreement gate for commits")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="log HTTP exchanges and decisions")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="validate a single commit")
    check.add_argument("rev", nargs="?", default="HEAD")
    check.add_argument("--project", required=True, help="project the commit is pushed to")
    check.add_argument("--pusher", default=None, help="username of the account pushing the commit")
    check.add_argument("--repo", type=Path, default=Path("."), help="path to the git repository")
    return parser


def _check(args: argparse.Namespace, config: GateConfig) -> int:
    directory = StaticDirectory.from_config(config.directory)
    commit = read_commit(args.rev, args.repo)
    author = author_identity(commit.author, directory)
    pusher = resolve_pusher(commit, directory, args.pusher)

    evaluator, close = build_evaluator(config, directory, repo_url=str(args.repo.resolve()))
    try:
        outcome = evaluator.validate(commit, author, pusher, args.project)
    except TransportError as exc:
        LOGGER.error("Validation of %s could not complete: %s", commit.short_hash, exc)
        print(COULD_NOT_VERIFY, file=sys.stderr)
        return EXIT_UNVERIFIED
    finally:
        close()

    for line in render(outcome):
        print(line)
    if not outcome.passed:
        for error in outcome.errors:
            print(f"ERROR: {error}", file=sys.stderr)
        return EXIT_REJECTED
    return EXIT_PASSED


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    load_dotenv()
    configure_logging(args.verbose)
    try:
        config = validate_gate_config(load_gate_config(args.config))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    try:
        return _check(args, config)
    except EcaGateError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_CONFIG
