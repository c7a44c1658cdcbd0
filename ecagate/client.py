"""HTTP client for the profile, bot registry and validation endpoints."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar
from urllib.parse import quote, urljoin

import requests
from pydantic import BaseModel, ValidationError

from .auth import AUTHORIZATION, OAuthChallengeAuth
from .config import GateConfig
from .credentials import CredentialManager
from .errors import AuthRefreshExhausted, TransportError
from .models import BotRecord, ProfileRecord
from .payloads import (
    BotPayload,
    ProfilePayload,
    ValidationRequestPayload,
    ValidationResponsePayload,
)

LOGGER = logging.getLogger(__name__)

REDACTED = "[REDACTED]"
_SENSITIVE_HEADERS = frozenset({AUTHORIZATION.lower(), "proxy-authorization", "cookie"})

_Model = TypeVar("_Model", bound=BaseModel)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        name: (REDACTED if name.lower() in _SENSITIVE_HEADERS else value)
        for name, value in headers.items()
    }


def log_exchange(response: requests.Response, *args: Any, **kwargs: Any) -> requests.Response:
    """Response hook writing one line per request and response at DEBUG."""

    if LOGGER.isEnabledFor(logging.DEBUG):
        request = response.request
        LOGGER.debug("--> %s %s %s", request.method, request.url, redact_headers(request.headers))
        elapsed_ms = int(response.elapsed.total_seconds() * 1000) if response.elapsed else 0
        LOGGER.debug("<-- %s %s (%dms)", response.status_code, request.url, elapsed_ms)
    return response


def build_session(auth: Optional[OAuthChallengeAuth] = None) -> requests.Session:
    session = requests.Session()
    session.headers["Accept"] = "application/json"
    if auth is not None:
        session.auth = auth
    session.hooks["response"].append(log_exchange)
    return session


class ProfileServiceClient:
    """Authenticated access to the profile service.

    404 answers are part of the protocol (no such profile / no bots) and come
    back as empty results; every other failure raises :class:`TransportError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session,
        timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._session = session
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: GateConfig) -> "ProfileServiceClient":
        token_session = build_session()
        credentials = CredentialManager.from_config(config, session=token_session)
        session = build_session(OAuthChallengeAuth(credentials))
        return cls(config.api_base_url, session=session, timeout=config.request_timeout_s)

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    def get_profile(self, name: str) -> Optional[ProfileRecord]:
        response = self._get(f"account/profile/{quote(name, safe='')}")
        if response is None:
            return None
        return self._decode(response, ProfilePayload).to_dataclass()

    def search_profiles(
        self,
        *,
        uid: Optional[int] = None,
        name: Optional[str] = None,
        mail: Optional[str] = None,
    ) -> List[ProfileRecord]:
        params = {key: value for key, value in (("uid", uid), ("name", name), ("mail", mail)) if value is not None}
        response = self._get("account/profile", params=params)
        if response is None:
            return []
        return [item.to_dataclass() for item in self._decode_list(response, ProfilePayload)]

    def search_bots(self, query: str) -> List[BotRecord]:
        response = self._get("bots", params={"q": query})
        if response is None:
            return []
        return [item.to_dataclass() for item in self._decode_list(response, BotPayload)]

    def validate_commits(self, request: ValidationRequestPayload) -> ValidationResponsePayload:
        url = urljoin(self._base_url, "git/eca")
        try:
            response = self._session.post(url, json=request.to_wire(), timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(f"POST {url} failed: {exc}") from exc
        self._check_status(response)
        return self._decode(response, ValidationResponsePayload)

    def _get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Optional[requests.Response]:
        url = urljoin(self._base_url, path)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc}") from exc
        if response.status_code == 404:
            return None
        self._check_status(response)
        return response

    @staticmethod
    def _check_status(response: requests.Response) -> None:
        if response.status_code == 401:
            raise AuthRefreshExhausted(f"{response.url} rejected every access token")
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TransportError(f"{response.url} answered {response.status_code}") from exc

    @staticmethod
    def _decode(response: requests.Response, model: Type[_Model]) -> _Model:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"Unreadable {model.__name__} from {response.url}") from exc

    @classmethod
    def _decode_list(cls, response: requests.Response, model: Type[_Model]) -> List[_Model]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(f"Unreadable body from {response.url}") from exc
        if not isinstance(payload, list):
            raise TransportError(f"Expected a list from {response.url}, got {type(payload).__name__}")
        try:
            return [model.model_validate(item) for item in _as_items(payload)]
        except ValidationError as exc:
            raise TransportError(f"Unreadable {model.__name__} from {response.url}") from exc


def _as_items(payload: Iterable[Any]) -> List[Any]:
    return [item for item in payload if item is not None]
