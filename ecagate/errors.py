"""Exception taxonomy for commit authorization."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .models import ValidationOutcome


class EcaGateError(RuntimeError):
    pass


class TransportError(EcaGateError):
    """Network, timeout, TLS or protocol failure talking to a remote endpoint."""


class AuthRefreshExhausted(TransportError):
    """The retry-on-401 protocol gave up without an accepted token."""


class ResolutionError(TransportError):
    """Candidate queries failed and none of them produced a match."""


class ConfigurationError(ValueError):
    pass


class ContentRejection(EcaGateError):
    """One or more substantive checks failed for a commit.

    ``errors`` holds every blocking error found in the pass, in step order;
    ``outcome`` is the full diagnostic trail that produced them.
    """

    def __init__(self, errors: Sequence[str], outcome: "ValidationOutcome") -> None:
        self.errors = tuple(errors)
        self.outcome = outcome
        summary = self.errors[0] if self.errors else "Commit rejected."
        super().__init__(summary)
