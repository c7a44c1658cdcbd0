"""Per-commit authorization decision.

A committer on the project may push their own work or that of other
committers. Anybody else needs a current agreement on file (or a registered
bot account) and must sign off on the commit. Pushing on behalf of another
author always requires committer rights, independently of the author's
standing.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .config import DEFAULT_DOCUMENTATION
from .errors import TransportError
from .identity import CommitterDirectory
from .models import (
    CommitInfo,
    Identity,
    OutcomeBuilder,
    ValidationOutcome,
    ValidationStep,
)
from .resolver import CandidateResolver
from .trailers import signed_off_emails

LOGGER = logging.getLogger(__name__)

AGREEMENT_REQUIRED = "An agreement is required."
SIGN_OFF_REQUIRED = "The contributor must sign off on the contribution."
DELEGATION_REQUIRED = "You must be a committer to push on behalf of others."
PASSED = "This commit passes validation."


class AuthorizationChecks(Protocol):
    """Capabilities the validator needs; local and remote strategies plug in here."""

    def is_committer(self, identity: Identity, project: str) -> bool:
        ...

    def has_signed_agreement(self, identity: Identity) -> bool:
        ...

    def is_bot_exempt(self, identity: Identity) -> bool:
        ...


class CommitEvaluator(Protocol):
    def validate(self, commit: CommitInfo, author: Identity, pusher: Identity, project: str) -> ValidationOutcome:
        ...


class RemoteProfileChecks:
    """Committer status from the host, agreements and bots from the profile service."""

    def __init__(self, committers: CommitterDirectory, resolver: CandidateResolver) -> None:
        self._committers = committers
        self._resolver = resolver

    def is_committer(self, identity: Identity, project: str) -> bool:
        return self._committers.is_committer(identity, project)

    def has_signed_agreement(self, identity: Identity) -> bool:
        return self._resolver.has_signed_agreement(identity)

    def is_bot_exempt(self, identity: Identity) -> bool:
        return self._resolver.is_bot_exempt(identity)


def has_signed_off(commit: CommitInfo, author: Identity) -> bool:
    """``True`` when a Signed-off-by trailer uses the commit email or a known account email."""

    for email in signed_off_emails(commit.message):
        if author.matches_email(email) or email.casefold() == commit.author.email.casefold():
            return True
    return False


def add_header(outcome: OutcomeBuilder, commit: CommitInfo) -> None:
    outcome.separator()
    outcome.add(f"Reviewing commit: {commit.short_hash}")
    outcome.add(f"Authored by: {commit.author}")
    outcome.blank()


def check_delegation(
    outcome: OutcomeBuilder,
    committers: CommitterDirectory | AuthorizationChecks,
    author: Identity,
    pusher: Identity,
    project: str,
    documentation: str,
) -> bool:
    """Pushing for someone else requires the pusher to be a committer."""

    if author.same_account(pusher):
        return True
    if committers.is_committer(pusher, project):
        outcome.add("The pusher is a committer and may push on behalf of others.", step=ValidationStep.DELEGATION_CHECK)
        return True
    LOGGER.info("Rejecting push by %s on behalf of %s", pusher, author)
    outcome.error("You are not a project committer.", ValidationStep.DELEGATION_CHECK)
    outcome.error("Only project committers can push on behalf of others.", ValidationStep.DELEGATION_CHECK)
    outcome.add(documentation)
    outcome.blank()
    outcome.block(DELEGATION_REQUIRED)
    return False


class CommitValidator:
    """Runs committer, agreement, bot, sign-off and delegation checks in order.

    Content failures come back as a failed :class:`ValidationOutcome`;
    :class:`TransportError` propagates so that "service unreachable" is never
    reported as "agreement missing".
    """

    def __init__(self, checks: AuthorizationChecks, *, documentation: str = DEFAULT_DOCUMENTATION) -> None:
        self._checks = checks
        self._documentation = documentation

    def validate(self, commit: CommitInfo, author: Identity, pusher: Identity, project: str) -> ValidationOutcome:
        outcome = OutcomeBuilder()
        add_header(outcome, commit)
        try:
            if not self._check_author(outcome, commit, author, project):
                outcome.add(self._documentation)
                return outcome.build(passed=False)
        except TransportError:
            LOGGER.error("Could not verify commit %s by %s", commit.short_hash, author, exc_info=True)
            raise

        outcome.blank()
        if not check_delegation(outcome, self._checks, author, pusher, project, self._documentation):
            return outcome.build(passed=False)
        outcome.add(PASSED)
        return outcome.build(passed=True)

    def _check_author(self, outcome: OutcomeBuilder, commit: CommitInfo, author: Identity, project: str) -> bool:
        if author.username is None:
            outcome.add("The author does not have a local account.", step=ValidationStep.COMMITTER_CHECK)
        if author.username is not None and self._checks.is_committer(author, project):
            outcome.add("The author is a committer on the project.", step=ValidationStep.COMMITTER_CHECK)
            return True
        outcome.add("The author is not a committer on the project.", step=ValidationStep.COMMITTER_CHECK)

        if self._checks.has_signed_agreement(author):
            outcome.add("The author has a current agreement on file.", step=ValidationStep.AGREEMENT_CHECK)
        else:
            outcome.add("The author does not have a current agreement on file.", step=ValidationStep.AGREEMENT_CHECK)
            if self._checks.is_bot_exempt(author):
                outcome.add(
                    "The author is a registered bot and does not need an agreement.",
                    step=ValidationStep.BOT_EXEMPTION_CHECK,
                )
            else:
                outcome.error(
                    "The author is not a registered bot.\n"
                    "If there are multiple commits, please ensure that each author has an agreement.",
                    ValidationStep.BOT_EXEMPTION_CHECK,
                )
                outcome.blank()
                outcome.block(AGREEMENT_REQUIRED)

        if has_signed_off(commit, author):
            outcome.add('The author has "signed-off" on the contribution.', step=ValidationStep.SIGN_OFF_CHECK)
        else:
            outcome.error(
                'The author has not "signed-off" on the contribution.\n'
                "If there are multiple commits, please ensure that each commit is signed-off.",
                ValidationStep.SIGN_OFF_CHECK,
            )
            outcome.block(SIGN_OFF_REQUIRED)
        return not outcome.has_errors
