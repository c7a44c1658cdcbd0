"""Commit message trailer parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

SIGNED_OFF_BY = "signed-off-by"

_TRAILER_RE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9-]*)\s*:\s*(.*?)\s*$")
_EMAIL_RE = re.compile(r"<([^<>]*)>")


@dataclass(frozen=True)
class Trailer:
    key: str
    value: str

    def matches(self, key: str) -> bool:
        return self.key.lower() == key.lower()

    @property
    def email(self) -> Optional[str]:
        found = _EMAIL_RE.search(self.value)
        if found:
            return found.group(1).strip() or None
        if "<" not in self.value and "@" in self.value:
            return self.value.strip()
        return None


def _last_paragraph(message: str) -> List[str]:
    paragraphs: List[List[str]] = [[]]
    for line in message.strip().splitlines():
        if line.strip():
            paragraphs[-1].append(line)
        elif paragraphs[-1]:
            paragraphs.append([])
    return paragraphs[-1]


def parse_trailers(message: str) -> List[Trailer]:
    trailers: List[Trailer] = []
    for line in _last_paragraph(message):
        match = _TRAILER_RE.match(line)
        if match:
            trailers.append(Trailer(key=match.group(1), value=match.group(2)))
    return trailers


def signed_off_emails(message: str) -> List[str]:
    emails: List[str] = []
    for trailer in parse_trailers(message):
        if trailer.matches(SIGNED_OFF_BY) and trailer.email:
            emails.append(trailer.email)
    return emails
