"""Client-credentials token cache for the profile service."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import requests
from pydantic import ValidationError

from .config import GateConfig
from .models import AccessToken
from .payloads import TokenPayload

LOGGER = logging.getLogger(__name__)


class CredentialStore:
    """Holds at most one bearer token; reads and writes are atomic."""

    def __init__(self, token: Optional[AccessToken] = None) -> None:
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> Optional[AccessToken]:
        with self._lock:
            return self._token

    def replace(self, token: AccessToken) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._token = None


class CredentialManager:
    """Obtains tokens from the OAuth token endpoint and caches the last good one.

    :meth:`refresh` never retries on its own; callers decide whether the outer
    request is worth another attempt. A failed refresh leaves the previous
    token (if any) in place.
    """

    def __init__(
        self,
        *,
        token_url: str,
        client_id: str,
        client_secret: str,
        scope: str,
        grant_type: str = "client_credentials",
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        store: Optional[CredentialStore] = None,
    ) -> None:
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._scope = scope
        self._grant_type = grant_type
        self._timeout = timeout
        self._session = session or requests.Session()
        self._store = store or CredentialStore()

    @classmethod
    def from_config(cls, config: GateConfig, *, session: Optional[requests.Session] = None) -> "CredentialManager":
        return cls(
            token_url=config.token_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scope=config.scope,
            grant_type=config.grant_type,
            timeout=config.request_timeout_s,
            session=session,
        )

    @property
    def store(self) -> CredentialStore:
        return self._store

    def current_token(self) -> Optional[AccessToken]:
        return self._store.get()

    def refresh(self) -> Optional[AccessToken]:
        token = self._request_token()
        if token is None:
            return None
        self._store.replace(token)
        LOGGER.info("Obtained access token (type=%s, expires_in=%ss)", token.token_type, token.expires_in_seconds)
        return token

    def _request_token(self) -> Optional[AccessToken]:
        form = {
            "grant_type": self._grant_type,
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": self._scope,
        }
        try:
            response = self._session.post(self._token_url, data=form, timeout=self._timeout)
        except requests.RequestException as exc:
            LOGGER.warning("Token request to %s failed: %s", self._token_url, exc)
            return None
        if not response.ok:
            LOGGER.warning("Token endpoint %s answered %s", self._token_url, response.status_code)
            return None
        try:
            payload = TokenPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            LOGGER.warning("Token endpoint %s returned an unreadable body: %s", self._token_url, exc)
            return None
        if not payload.access_token:
            LOGGER.warning("Token endpoint %s returned an empty access token", self._token_url)
            return None
        return payload.to_dataclass()
