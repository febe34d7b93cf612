"""Line-oriented parsing of free-form generation output."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from outreach.errors import ParseError

LOGGER = logging.getLogger(__name__)

SUBJECT_MARKER = "Subject:"
SOURCES_MARKER = "SOURCES USED:"


@dataclass(frozen=True, slots=True)
class ParsedEmail:
    subject: str
    body: str
    sources_note: str
    recovered: bool = False


def default_subject(target_role: Optional[str]) -> str:
    return f"Application for {target_role or 'this position'}"


def parse_strict(response: str) -> ParsedEmail:
    """Parse ``response``; raise ``ParseError`` when no subject line is present.

    Non-empty lines before a ``SOURCES USED:`` marker form the body. A later
    ``Subject:`` line resumes body collection.
    """

    subject: Optional[str] = None
    sources_note = ""
    body: List[str] = []
    collecting = True
    for line in (response or "").splitlines():
        if not line.strip():
            continue
        stripped = line.strip()
        if stripped.startswith(SUBJECT_MARKER):
            subject = stripped[len(SUBJECT_MARKER):].strip()
            collecting = True
        elif stripped.startswith(SOURCES_MARKER):
            sources_note = stripped[len(SOURCES_MARKER):].strip()
            collecting = False
        elif collecting:
            body.append(line.rstrip())

    if not subject:
        raise ParseError("Generation output has no subject line")
    return ParsedEmail(subject=subject, body="\n".join(body).strip(), sources_note=sources_note)


def parse_email_response(response: str, target_role: Optional[str] = None) -> ParsedEmail:
    """Parse generation output, recovering locally from a missing subject."""

    try:
        return parse_strict(response)
    except ParseError as error:
        LOGGER.info("Recovering from unparseable generation output: %s", error)

    sources_note = ""
    body: List[str] = []
    for line in (response or "").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(SOURCES_MARKER):
            sources_note = sources_note or stripped[len(SOURCES_MARKER):].strip()
            continue
        if stripped.startswith(SUBJECT_MARKER):
            continue
        body.append(line.rstrip())
    return ParsedEmail(
        subject=default_subject(target_role),
        body="\n".join(body).strip(),
        sources_note=sources_note,
        recovered=True,
    )


__all__ = ["ParsedEmail", "default_subject", "parse_email_response", "parse_strict"]
