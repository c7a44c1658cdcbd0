"""Concurrent agreement and bot-exemption lookups for a commit author."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional, Protocol, Sequence

from .errors import ResolutionError, TransportError
from .models import BotRecord, Identity, ProfileRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_WORKERS = 8

Query = Callable[[], bool]


class ProfileLookup(Protocol):
    def get_profile(self, name: str) -> Optional[ProfileRecord]:
        ...

    def search_profiles(
        self,
        *,
        uid: Optional[int] = None,
        name: Optional[str] = None,
        mail: Optional[str] = None,
    ) -> Sequence[ProfileRecord]:
        ...

    def search_bots(self, query: str) -> Sequence[BotRecord]:
        ...


class _AnyMatch:
    """First-writer-wins reduction over query futures.

    The verdict is ``True`` on the first satisfied query, ``False`` once every
    query finished unsatisfied, or a :class:`ResolutionError` when at least one
    query failed and nothing matched. Completions after the verdict are no-ops.
    """

    def __init__(self, pending: int, prior_failure: Optional[BaseException] = None) -> None:
        self.verdict: Future[bool] = Future()
        self._pending = pending
        self._failure = prior_failure
        self._lock = threading.Lock()
        if pending == 0:
            self._settle()

    def accept(self, completed: Future[bool]) -> None:
        failure = completed.exception()
        with self._lock:
            if self.verdict.done():
                return
            self._pending -= 1
            if failure is not None:
                if self._failure is None:
                    self._failure = failure
                LOGGER.debug("Candidate query failed: %s", failure)
            elif completed.result():
                self.verdict.set_result(True)
                return
            if self._pending == 0:
                self._settle()

    def _settle(self) -> None:
        if self._failure is None:
            self.verdict.set_result(False)
            return
        error = ResolutionError(f"Could not resolve candidate: {self._failure}")
        error.__cause__ = self._failure
        self.verdict.set_exception(error)


def any_match(
    executor: ThreadPoolExecutor,
    queries: Sequence[Query],
    *,
    prior_failure: Optional[BaseException] = None,
) -> Future[bool]:
    """Run ``queries`` concurrently and reduce them with any-match semantics.

    Outstanding queries are never cancelled once the verdict is known; they
    finish in the background and their results are discarded.
    """

    reduction = _AnyMatch(len(queries), prior_failure)
    for query in queries:
        executor.submit(query).add_done_callback(reduction.accept)
    return reduction.verdict


class CandidateResolver:
    """Maps an author identity to agreement and bot-exemption verdicts."""

    def __init__(self, profiles: ProfileLookup, *, max_workers: int = DEFAULT_WORKERS) -> None:
        self._profiles = profiles
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ecagate-resolver")

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "CandidateResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def has_signed_agreement(self, identity: Identity) -> bool:
        username_failure: Optional[BaseException] = None
        if identity.username:
            try:
                profile = self._profiles.get_profile(identity.username)
            except TransportError as exc:
                LOGGER.warning("Profile lookup for %s failed; falling back to emails: %s", identity.username, exc)
                username_failure = exc
            else:
                if profile is not None:
                    LOGGER.info(
                        "Account %s %s a signed agreement",
                        identity.username,
                        "has" if profile.agreement.signed else "does not have",
                    )
                    return profile.agreement.signed

        queries = [partial(self._email_has_agreement, email) for email in sorted(identity.known_emails)]
        signed = any_match(self._executor, queries, prior_failure=username_failure).result()
        LOGGER.info("Author %s %s a signed agreement", identity, "has" if signed else "does not have")
        return signed

    def is_bot_exempt(self, identity: Identity) -> bool:
        if identity.username:
            candidates = [identity.username]
        else:
            candidates = sorted(identity.known_emails)
        queries = [partial(self._bot_links_email, candidate, identity.primary_email) for candidate in candidates]
        exempt = any_match(self._executor, queries).result()
        if exempt:
            LOGGER.info("Author %s is a registered bot", identity)
        return exempt

    def _email_has_agreement(self, email: str) -> bool:
        return any(profile.agreement.signed for profile in self._profiles.search_profiles(mail=email))

    def _bot_links_email(self, query: str, commit_email: str) -> bool:
        return any(bot.links_email(commit_email) for bot in self._profiles.search_bots(query))
