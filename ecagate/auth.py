"""Bearer authentication with bounded retry on 401 challenges."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import requests
from requests.auth import AuthBase

from .credentials import CredentialManager

LOGGER = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"
MAX_ATTEMPTS = 3


def response_count(response: requests.Response) -> int:
    """Number of responses in the retry chain ending with ``response``."""

    return 1 + len(response.history)


class OAuthChallengeAuth(AuthBase):
    """Attach the cached bearer token and answer 401 challenges.

    One instance is shared by every request of a client; :meth:`on_challenge`
    runs under the instance lock so that concurrent requests failing with the
    same stale token trigger a single refresh.
    """

    def __init__(self, credentials: CredentialManager) -> None:
        self._credentials = credentials
        self._lock = threading.Lock()

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        token = self._credentials.current_token()
        if token is not None and AUTHORIZATION not in request.headers:
            request.headers[AUTHORIZATION] = token.bearer_value
        request.register_hook("response", self.handle_401)
        return request

    def on_challenge(
        self,
        request: requests.PreparedRequest,
        response: requests.Response,
    ) -> Optional[requests.PreparedRequest]:
        """Return the request to retry after ``response`` challenged ``request``, or ``None``."""

        with self._lock:
            attempts = response_count(response)
            if attempts >= MAX_ATTEMPTS:
                LOGGER.warning("Giving up on %s after %d authentication attempts", request.url, attempts)
                return None

            cached = self._credentials.current_token()
            sent = request.headers.get(AUTHORIZATION)
            if sent is not None:
                if cached is not None and cached.bearer_value == sent:
                    LOGGER.info("Cached token rejected by %s; refreshing", request.url)
                    token = self._credentials.refresh()
                else:
                    LOGGER.debug("Request used a superseded token; retrying with the cached one")
                    token = cached
            else:
                token = cached if cached is not None else self._credentials.refresh()

            if token is None:
                LOGGER.warning("No access token available for %s", request.url)
                return None
            retry = request.copy()
            retry.headers[AUTHORIZATION] = token.bearer_value
            return retry

    def handle_401(self, response: requests.Response, **kwargs: Any) -> requests.Response:
        if response.status_code != 401:
            return response
        retry = self.on_challenge(response.request, response)
        if retry is None:
            return response

        # Release the connection so the retry can reuse it.
        response.content
        response.close()
        retried = response.connection.send(retry, **kwargs)
        retried.history = [*response.history, response]
        retried.request = retry
        # Session hooks do not run for adapter-level sends.
        LOGGER.debug("<-- %s %s (attempt %d)", retried.status_code, retry.url, response_count(retried))
        return self.handle_401(retried, **kwargs)
