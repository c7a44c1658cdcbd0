"""Host contracts and identity construction for authors and pushers."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .models import Identity, LocalAccount, Person

LOGGER = logging.getLogger(__name__)


class AccountDirectory(Protocol):
    """Local platform accounts, looked up by email or username."""

    def resolve_local_account(self, key: str) -> Optional[LocalAccount]:
        ...


class CommitterDirectory(Protocol):
    def is_committer(self, identity: Identity, project: str) -> bool:
        ...


def lookup_account(accounts: AccountDirectory, email: str) -> Optional[LocalAccount]:
    account = accounts.resolve_local_account(email)
    if account is None and email.lower() != email:
        account = accounts.resolve_local_account(email.lower())
    return account


def author_identity(person: Person, accounts: AccountDirectory) -> Identity:
    """Build the author identity, enriched with the matching local account if any."""

    account = lookup_account(accounts, person.email)
    if account is None:
        LOGGER.info("No local account for %s", person)
        return Identity(display_name=person.name, primary_email=person.email)
    return Identity(
        display_name=person.name,
        primary_email=person.email,
        known_emails=frozenset(account.emails) | {person.email},
        username=account.username,
    )


def account_identity(account: LocalAccount, display_name: str | None = None) -> Identity:
    emails = sorted(account.emails)
    primary = emails[0] if emails else ""
    return Identity(
        display_name=display_name or account.username,
        primary_email=primary,
        known_emails=frozenset(account.emails),
        username=account.username,
    )
