"""Configuration-backed account and committer directory."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Sequence

from .config import AccountEntry, DirectoryConfig
from .models import Identity, LocalAccount, normalise_email


class StaticDirectory:
    """Implements both host contracts from static data."""

    def __init__(
        self,
        accounts: Iterable[LocalAccount] = (),
        committers: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> None:
        self._by_username: Dict[str, LocalAccount] = {}
        self._by_email: Dict[str, LocalAccount] = {}
        for account in accounts:
            self._by_username[account.username] = account
            for email in account.emails:
                self._by_email.setdefault(normalise_email(email), account)
        self._committers = {project: frozenset(users) for project, users in (committers or {}).items()}

    @classmethod
    def from_config(cls, config: DirectoryConfig) -> "StaticDirectory":
        return cls(
            accounts=(_to_account(entry) for entry in config.accounts),
            committers=config.committers,
        )

    def resolve_local_account(self, key: str) -> Optional[LocalAccount]:
        if key in self._by_username:
            return self._by_username[key]
        return self._by_email.get(normalise_email(key))

    def is_committer(self, identity: Identity, project: str) -> bool:
        if identity.username is None:
            return False
        return identity.username in self._committers.get(project, frozenset())


def _to_account(entry: AccountEntry) -> LocalAccount:
    return LocalAccount(username=entry.username, emails=frozenset(entry.emails))
