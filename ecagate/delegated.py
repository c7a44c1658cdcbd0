"""Commit validation delegated to the remote validation endpoint."""

from __future__ import annotations

import logging

from .config import DEFAULT_DOCUMENTATION
from .errors import TransportError
from .identity import CommitterDirectory
from .models import CommitInfo, Identity, OutcomeBuilder, Severity, ValidationOutcome
from .payloads import CommitPayload, ValidationRequestPayload, ValidationResponsePayload
from .client import ProfileServiceClient
from .validator import AGREEMENT_REQUIRED, PASSED, add_header, check_delegation

LOGGER = logging.getLogger(__name__)


class DelegatedValidator:
    """Same contract as :class:`~ecagate.validator.CommitValidator`.

    Committer bypass, agreement/bot and sign-off decisions are made by the
    service; the delegation check stays local since only the host knows who
    pushed.
    """

    def __init__(
        self,
        client: ProfileServiceClient,
        committers: CommitterDirectory,
        *,
        repo_url: str,
        provider: str = "gerrit",
        strict_mode: bool = False,
        documentation: str = DEFAULT_DOCUMENTATION,
    ) -> None:
        self._client = client
        self._committers = committers
        self._repo_url = repo_url
        self._provider = provider
        self._strict_mode = strict_mode
        self._documentation = documentation

    def build_request(self, commit: CommitInfo) -> ValidationRequestPayload:
        return ValidationRequestPayload(
            repo_url=self._repo_url,
            provider=self._provider,
            commits=[CommitPayload.from_commit(commit)],
            strict_mode=self._strict_mode,
        )

    def validate(self, commit: CommitInfo, author: Identity, pusher: Identity, project: str) -> ValidationOutcome:
        outcome = OutcomeBuilder()
        add_header(outcome, commit)
        try:
            response = self._client.validate_commits(self.build_request(commit))
        except TransportError:
            LOGGER.error("Validation service could not check commit %s", commit.short_hash, exc_info=True)
            raise

        self._apply_response(outcome, response)
        if outcome.has_errors:
            outcome.add(self._documentation)
            return outcome.build(passed=False)

        if not check_delegation(outcome, self._committers, author, pusher, project, self._documentation):
            return outcome.build(passed=False)
        outcome.add(PASSED)
        return outcome.build(passed=True)

    @staticmethod
    def _apply_response(outcome: OutcomeBuilder, response: ValidationResponsePayload) -> None:
        tracked = response.tracked_project
        if not tracked:
            LOGGER.debug("Project is not tracked by the validation service; errors are advisory")
        for status in response.commits.values():
            for message in status.messages:
                severity = Severity.ERROR if message.is_error and tracked else Severity.INFO
                outcome.add(message.message, severity)
            for warning in status.warnings:
                outcome.add(warning.message, Severity.WARNING)
            outcome.blank()
            if response.error_count > 0 and tracked:
                outcome.extend_errors(error.message for error in status.errors)
        if tracked and (response.error_count > 0 or not response.passed) and not outcome.has_errors:
            outcome.block(AGREEMENT_REQUIRED)
