"""Domain records shared by the resolver, the validators and the host adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional, Tuple

from .errors import ContentRejection


def normalise_email(value: str) -> str:
    return value.strip().casefold()


@dataclass(frozen=True, slots=True)
class Person:
    """Name/email pair as recorded on a commit."""

    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


@dataclass(frozen=True, slots=True)
class LocalAccount:
    username: str
    emails: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Identity:
    """Author or pusher identity, fixed for the lifetime of one validation.

    ``primary_email`` is always a member of ``known_emails``.
    """

    display_name: str
    primary_email: str
    known_emails: frozenset[str] = frozenset()
    username: Optional[str] = None

    def __post_init__(self) -> None:
        if self.primary_email not in self.known_emails:
            object.__setattr__(self, "known_emails", self.known_emails | {self.primary_email})

    def matches_email(self, email: str | None) -> bool:
        if not email:
            return False
        wanted = normalise_email(email)
        return any(normalise_email(known) == wanted for known in self.known_emails)

    def same_account(self, other: "Identity") -> bool:
        return self.username is not None and self.username == other.username

    def __str__(self) -> str:
        return f"{self.display_name} <{self.primary_email}>"


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Commit metadata handed over by the host."""

    hash: str
    author: Person
    committer: Person
    subject: str = ""
    body: str = ""
    parents: Tuple[str, ...] = ()

    @property
    def short_hash(self) -> str:
        return self.hash[:8]

    @property
    def message(self) -> str:
        if not self.body:
            return self.subject
        if not self.subject:
            return self.body
        return f"{self.subject}\n\n{self.body}"


@dataclass(frozen=True, slots=True)
class AgreementStatus:
    signed: bool
    spec_project_eligible: bool = False


@dataclass(frozen=True, slots=True)
class ProfileRecord:
    uid: int
    name: str
    agreement: AgreementStatus
    mail: Optional[str] = None
    is_committer: bool = False


@dataclass(frozen=True, slots=True)
class BotAccount:
    """A bot's account on an external service (GitHub, Docker Hub, ...)."""

    username: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True, slots=True)
class BotRecord:
    id: int
    project_id: str
    username: str
    email: Optional[str] = None
    accounts: Mapping[str, BotAccount] = field(default_factory=dict)

    def links_email(self, email: str | None) -> bool:
        """Return ``True`` when a linked service account uses ``email``."""

        if not email:
            return False
        wanted = normalise_email(email)
        for account in self.accounts.values():
            if account.email and normalise_email(account.email) == wanted:
                return True
        return False


@dataclass(frozen=True, slots=True, eq=False)
class AccessToken:
    """OAuth bearer token. Two tokens are equal when their header values are."""

    token: str = field(repr=False)
    expires_in_seconds: int
    token_type: str = "Bearer"
    scope: str = ""

    @property
    def bearer_value(self) -> str:
        return f"{self.token_type} {self.token}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccessToken):
            return NotImplemented
        return self.bearer_value == other.bearer_value

    def __hash__(self) -> int:
        return hash(self.bearer_value)


class ValidationStep(str, Enum):
    COMMITTER_CHECK = "committer_check"
    AGREEMENT_CHECK = "agreement_check"
    BOT_EXEMPTION_CHECK = "bot_exemption_check"
    SIGN_OFF_CHECK = "sign_off_check"
    DELEGATION_CHECK = "delegation_check"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class DiagnosticEntry:
    text: str
    severity: Severity = Severity.INFO
    step: Optional[ValidationStep] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True, slots=True)
class ValidationOutcome:
    """Ordered diagnostic trail and verdict for a single commit."""

    entries: Tuple[DiagnosticEntry, ...]
    errors: Tuple[str, ...]
    passed: bool

    def for_step(self, step: ValidationStep) -> Tuple[DiagnosticEntry, ...]:
        return tuple(entry for entry in self.entries if entry.step is step)

    def steps(self) -> Tuple[ValidationStep, ...]:
        seen: list[ValidationStep] = []
        for entry in self.entries:
            if entry.step is not None and entry.step not in seen:
                seen.append(entry.step)
        return tuple(seen)

    def lines(self) -> Tuple[str, ...]:
        return tuple(entry.text for entry in self.entries)

    def raise_for_rejection(self) -> None:
        if not self.passed:
            raise ContentRejection(self.errors, self)


class OutcomeBuilder:
    """Mutable accumulator used while a validator runs; frozen by :meth:`build`."""

    def __init__(self) -> None:
        self._entries: list[DiagnosticEntry] = []
        self._errors: list[str] = []

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    def add(self, text: str, severity: Severity = Severity.INFO, step: ValidationStep | None = None) -> None:
        self._entries.append(DiagnosticEntry(text=text, severity=severity, step=step))

    def error(self, text: str, step: ValidationStep | None = None) -> None:
        self.add(text, Severity.ERROR, step)

    def block(self, reason: str) -> None:
        self._errors.append(reason)

    def extend_errors(self, reasons: Iterable[str]) -> None:
        self._errors.extend(reasons)

    def separator(self) -> None:
        self.add("----------")

    def blank(self) -> None:
        self.add("")

    def build(self, passed: bool) -> ValidationOutcome:
        return ValidationOutcome(
            entries=tuple(self._entries),
            errors=tuple(self._errors),
            passed=passed and not self._errors,
        )
