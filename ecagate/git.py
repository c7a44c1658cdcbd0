"""Read commit metadata from a local git repository."""

from __future__ import annotations

import subprocess
from pathlib import Path

from .errors import EcaGateError
from .models import CommitInfo, Person

# Fields separated by the unit separator, terminated by the record separator.
_FORMAT = "%H%x1f%P%x1f%an%x1f%ae%x1f%cn%x1f%ce%x1f%s%x1f%b%x1e"


class GitError(EcaGateError):
    pass


def _run_git(args: list[str], repo: Path) -> str:
    result = subprocess.run(["git", "-C", str(repo), *args], capture_output=True, text=True, check=False)
    if result.returncode != 0:
        raise GitError(f"git command failed: {' '.join(args)}: {result.stderr.strip()}")
    return result.stdout


def parse_commit_record(record: str) -> CommitInfo:
    fields = record.rstrip("\n\x1e").split("\x1f")
    if len(fields) != 8:
        raise GitError(f"Unexpected git log record with {len(fields)} fields")
    commit_hash, parents, author_name, author_email, committer_name, committer_email, subject, body = fields
    return CommitInfo(
        hash=commit_hash.strip(),
        parents=tuple(parents.split()),
        author=Person(name=author_name, email=author_email),
        committer=Person(name=committer_name, email=committer_email),
        subject=subject,
        body=body.strip(),
    )


def read_commit(rev: str, repo: Path = Path(".")) -> CommitInfo:
    return parse_commit_record(_run_git(["log", "-1", f"--format={_FORMAT}", rev, "--"], repo))
