"""Wire payloads exchanged with the accounts and profile services."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    AccessToken,
    AgreementStatus,
    BotAccount,
    BotRecord,
    CommitInfo,
    Person,
    ProfileRecord,
)

# Bot record keys that never describe a linked service account.
_BOT_RECORD_KEYS = frozenset({"id", "projectId", "username", "email"})


class APIStatusCode(IntEnum):
    SUCCESS_DEFAULT = 200
    SUCCESS_COMMITTER = 201
    SUCCESS_CONTRIBUTOR = 202
    ERROR_DEFAULT = -401
    ERROR_SIGN_OFF = -402
    ERROR_SPEC_PROJECT = -403


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TokenPayload(_Payload):
    access_token: str
    expires_in: int = 0
    token_type: str = "Bearer"
    scope: str = ""

    def to_dataclass(self) -> AccessToken:
        return AccessToken(
            token=self.access_token,
            expires_in_seconds=self.expires_in,
            token_type=self.token_type,
            scope=self.scope,
        )


class EcaPayload(_Payload):
    signed: bool = False
    can_contribute_spec_project: bool = False


class ProfilePayload(_Payload):
    uid: int
    name: str
    mail: Optional[str] = None
    eca: EcaPayload = Field(default_factory=EcaPayload)
    is_committer: bool = False

    def to_dataclass(self) -> ProfileRecord:
        return ProfileRecord(
            uid=self.uid,
            name=self.name,
            mail=self.mail,
            agreement=AgreementStatus(
                signed=self.eca.signed,
                spec_project_eligible=self.eca.can_contribute_spec_project,
            ),
            is_committer=self.is_committer,
        )


class BotAccountPayload(_Payload):
    username: Optional[str] = None
    email: Optional[str] = None


class BotPayload(_Payload):
    """Bot registry entry. Linked accounts arrive as extra keys such as ``github.com``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    project_id: str = Field(default="", alias="projectId")
    username: str
    email: Optional[str] = None

    def linked_accounts(self) -> Dict[str, BotAccountPayload]:
        accounts: Dict[str, BotAccountPayload] = {}
        for key, value in (self.model_extra or {}).items():
            if key in _BOT_RECORD_KEYS or not isinstance(value, dict):
                continue
            accounts[key] = BotAccountPayload.model_validate(value)
        return accounts

    def to_dataclass(self) -> BotRecord:
        return BotRecord(
            id=self.id,
            project_id=self.project_id,
            username=self.username,
            email=self.email,
            accounts={
                key: BotAccount(username=account.username, email=account.email)
                for key, account in self.linked_accounts().items()
            },
        )


class GitUserPayload(_Payload):
    name: str
    mail: str

    @classmethod
    def from_person(cls, person: Person) -> "GitUserPayload":
        return cls(name=person.name, mail=person.email)


class CommitPayload(_Payload):
    hash: str
    subject: str = ""
    body: str = ""
    parents: List[str] = Field(default_factory=list)
    author: GitUserPayload
    committer: GitUserPayload
    head: bool = True

    @classmethod
    def from_commit(cls, commit: CommitInfo, *, head: bool = True) -> "CommitPayload":
        return cls(
            hash=commit.hash,
            subject=commit.subject,
            body=commit.message,
            parents=list(commit.parents),
            author=GitUserPayload.from_person(commit.author),
            committer=GitUserPayload.from_person(commit.committer),
            head=head,
        )


class ValidationRequestPayload(_Payload):
    repo_url: str = Field(alias="repoUrl")
    provider: str = "gerrit"
    commits: List[CommitPayload]
    strict_mode: bool = Field(default=False, alias="strictMode")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class CommitStatusMessagePayload(_Payload):
    code: int
    message: str

    @property
    def is_error(self) -> bool:
        return self.code < 0


class CommitStatusPayload(_Payload):
    messages: List[CommitStatusMessagePayload] = Field(default_factory=list)
    warnings: List[CommitStatusMessagePayload] = Field(default_factory=list)
    errors: List[CommitStatusMessagePayload] = Field(default_factory=list)


class ValidationResponsePayload(_Payload):
    passed: bool
    error_count: int = Field(default=0, alias="errorCount")
    time: Optional[str] = None
    commits: Dict[str, CommitStatusPayload] = Field(default_factory=dict)
    tracked_project: bool = Field(default=True, alias="trackedProject")
