from __future__ import annotations

import threading

import pytest
import requests
import requests_mock

from ecagate.auth import AUTHORIZATION, MAX_ATTEMPTS, OAuthChallengeAuth, response_count
from ecagate.client import build_session
from ecagate.credentials import CredentialManager, CredentialStore
from ecagate.models import AccessToken

TOKEN_URL = "https://accounts.example.org/oauth2/token"
PROFILE_URL = "https://api.example.org/account/profile/ada"


class RecordingCredentials:
    """Stands in for CredentialManager; every refresh issues the next numbered token."""

    def __init__(self, token: AccessToken | None = None, *, fail: bool = False) -> None:
        self.token = token
        self.fail = fail
        self.refreshes = 0
        self._lock = threading.Lock()

    def current_token(self):
        return self.token

    def refresh(self):
        with self._lock:
            self.refreshes += 1
            if self.fail:
                return None
            self.token = AccessToken(token=f"t{self.refreshes}", expires_in_seconds=60)
            return self.token


def _token(value: str) -> AccessToken:
    return AccessToken(token=value, expires_in_seconds=60)


def _challenge(authorization: str | None = None, history: int = 0):
    headers = {AUTHORIZATION: authorization} if authorization else {}
    request = requests.Request("GET", PROFILE_URL, headers=headers).prepare()
    response = requests.Response()
    response.status_code = 401
    response.request = request
    response.history = [requests.Response() for _ in range(history)]
    return request, response


def _session(store: CredentialStore | None = None) -> requests.Session:
    credentials = CredentialManager(
        token_url=TOKEN_URL,
        client_id="gate",
        client_secret="s3cret",
        scope="eclipsefdn_view_all_profiles",
        store=store,
    )
    return build_session(OAuthChallengeAuth(credentials))


def _tokens(*values: str):
    return [{"json": {"access_token": value, "expires_in": 3600}} for value in values]


def _gets(m: requests_mock.Mocker):
    return [request for request in m.request_history if request.method == "GET"]


def test_response_count_includes_history() -> None:
    _, response = _challenge(history=2)
    assert response_count(response) == 3


def test_challenge_refreshes_when_cached_token_was_rejected() -> None:
    credentials = RecordingCredentials(_token("t0"))
    request, response = _challenge("Bearer t0")
    retry = OAuthChallengeAuth(credentials).on_challenge(request, response)
    assert credentials.refreshes == 1
    assert retry is not None and retry.headers[AUTHORIZATION] == "Bearer t1"
    assert request.headers[AUTHORIZATION] == "Bearer t0"


def test_challenge_with_superseded_token_reuses_cache() -> None:
    credentials = RecordingCredentials(_token("t5"))
    request, response = _challenge("Bearer t4")
    retry = OAuthChallengeAuth(credentials).on_challenge(request, response)
    assert credentials.refreshes == 0
    assert retry.headers[AUTHORIZATION] == "Bearer t5"


def test_challenge_without_header_prefers_cache() -> None:
    credentials = RecordingCredentials(_token("t5"))
    retry = OAuthChallengeAuth(credentials).on_challenge(*_challenge())
    assert credentials.refreshes == 0
    assert retry.headers[AUTHORIZATION] == "Bearer t5"

    empty = RecordingCredentials()
    retry = OAuthChallengeAuth(empty).on_challenge(*_challenge())
    assert empty.refreshes == 1
    assert retry.headers[AUTHORIZATION] == "Bearer t1"


def test_challenge_gives_up_after_max_attempts() -> None:
    credentials = RecordingCredentials(_token("t0"))
    request, response = _challenge("Bearer t0", history=MAX_ATTEMPTS - 1)
    assert OAuthChallengeAuth(credentials).on_challenge(request, response) is None
    assert credentials.refreshes == 0


def test_challenge_without_obtainable_token_gives_up() -> None:
    credentials = RecordingCredentials(fail=True)
    assert OAuthChallengeAuth(credentials).on_challenge(*_challenge()) is None
    assert credentials.refreshes == 1


def test_concurrent_challenges_share_one_refresh() -> None:
    credentials = RecordingCredentials(_token("t0"))
    auth = OAuthChallengeAuth(credentials)
    barrier = threading.Barrier(8)
    retries = []

    def challenge() -> None:
        request, response = _challenge("Bearer t0")
        barrier.wait()
        retries.append(auth.on_challenge(request, response))

    threads = [threading.Thread(target=challenge) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert credentials.refreshes == 1
    assert {retry.headers[AUTHORIZATION] for retry in retries} == {"Bearer t1"}


@pytest.mark.network
def test_cached_token_is_attached_before_any_challenge() -> None:
    session = _session(CredentialStore(_token("cached")))
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, json={})
        token_endpoint = m.post(TOKEN_URL, json={"access_token": "unused"})
        response = session.get(PROFILE_URL)
    assert response.status_code == 200
    assert m.request_history[0].headers[AUTHORIZATION] == "Bearer cached"
    assert token_endpoint.call_count == 0


@pytest.mark.network
def test_first_challenge_obtains_a_token() -> None:
    session = _session()
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, [{"status_code": 401}, {"status_code": 200, "json": {}}])
        token_endpoint = m.post(TOKEN_URL, _tokens("t1"))
        response = session.get(PROFILE_URL)
        gets = _gets(m)

    assert response.status_code == 200
    assert token_endpoint.call_count == 1
    assert len(gets) == 2
    assert AUTHORIZATION not in gets[0].headers
    assert gets[1].headers[AUTHORIZATION] == "Bearer t1"
    assert [r.status_code for r in response.history] == [401]


@pytest.mark.network
def test_rejected_token_is_refreshed_once_more() -> None:
    session = _session()
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, [{"status_code": 401}, {"status_code": 401}, {"status_code": 200, "json": {}}])
        token_endpoint = m.post(TOKEN_URL, _tokens("t1", "t2"))
        response = session.get(PROFILE_URL)
        gets = _gets(m)

    assert response.status_code == 200
    assert token_endpoint.call_count == 2
    assert [get.headers.get(AUTHORIZATION) for get in gets] == [None, "Bearer t1", "Bearer t2"]


@pytest.mark.network
def test_retries_stop_after_three_attempts() -> None:
    session = _session()
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, status_code=401)
        token_endpoint = m.post(TOKEN_URL, _tokens("t1", "t2", "t3"))
        response = session.get(PROFILE_URL)
        gets = _gets(m)

    assert response.status_code == 401
    assert len(gets) == MAX_ATTEMPTS
    assert token_endpoint.call_count == 2
    assert len(response.history) == MAX_ATTEMPTS - 1


@pytest.mark.network
def test_superseded_token_is_retried_without_refresh() -> None:
    session = _session(CredentialStore(_token("current")))
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, [{"status_code": 401}, {"status_code": 200, "json": {}}])
        token_endpoint = m.post(TOKEN_URL, _tokens("unused"))
        response = session.get(PROFILE_URL, headers={AUTHORIZATION: "Bearer stale"})
        gets = _gets(m)

    assert response.status_code == 200
    assert token_endpoint.call_count == 0
    assert gets[1].headers[AUTHORIZATION] == "Bearer current"


@pytest.mark.network
def test_failed_refresh_returns_the_challenge() -> None:
    session = _session()
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, status_code=401)
        m.post(TOKEN_URL, status_code=503)
        response = session.get(PROFILE_URL)
        gets = _gets(m)

    assert response.status_code == 401
    assert len(gets) == 1


@pytest.mark.network
def test_other_statuses_are_not_retried() -> None:
    session = _session(CredentialStore(_token("cached")))
    with requests_mock.Mocker() as m:
        m.get(PROFILE_URL, status_code=403)
        token_endpoint = m.post(TOKEN_URL, _tokens("unused"))
        response = session.get(PROFILE_URL)

    assert response.status_code == 403
    assert token_endpoint.call_count == 0
    assert len(_gets(m)) == 1
