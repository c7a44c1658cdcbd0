# noqa: D100 - all tests share this setup module
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure the repository root is on sys.path before importing project modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ecagate.models import CommitInfo, Identity, Person


def pytest_configure(config):
    config.addinivalue_line('markers', 'network: tests that mock HTTP calls')


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("ECAGATE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ECAGATE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def contributor() -> Identity:
    return Identity(
        display_name="Ada Contributor",
        primary_email="ada@example.org",
        known_emails=frozenset({"ada@example.org", "ada@work.example.com"}),
        username="ada",
    )


def make_commit(
    *,
    author: Person = Person("Ada Contributor", "ada@example.org"),
    committer: Person | None = None,
    body: str = "",
    subject: str = "Fix the frobnicator",
) -> CommitInfo:
    return CommitInfo(
        hash="0123456789abcdef0123456789abcdef01234567",
        author=author,
        committer=committer or author,
        subject=subject,
        body=body,
        parents=("fedcba9876543210fedcba9876543210fedcba98",),
    )


@pytest.fixture(name="make_commit")
def _make_commit_fixture():
    return make_commit
