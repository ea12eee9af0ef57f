"""
Role text parsing.

A role is one functional statement, e.g.

    Threonine synthase (EC 4.2.3.1) # from RAST

The parser splits off the trailing comment and the EC/TC annotations. The
normalized form is what identifies a role: two role texts that normalize to
the same string are the same role and share a checksum.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from shrub.core.checksums import md5_base64

_COMMENT = re.compile(r"^(.+?)\s*[#!](.*)$")
_ANNOTATION = re.compile(r"\s*\((EC|TC)\s+([^()\s]+)\)", re.IGNORECASE)
_QUALIFIER = re.compile(r"^(?:(?:putative|probable|predicted|possible)\s+)+")
_NON_WORD = re.compile(r"[^a-z0-9]+")
_SPACES = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsedRole:
    """A role statement split into its parts."""

    text: str
    ec_number: str | None = None
    tc_number: str | None = None
    hypo: bool = False


def parse_role(role: str) -> ParsedRole:
    """
    Split a role statement into text, EC number, TC number and a
    hypothetical flag.

    When an annotation appears more than once the first one wins.

    Example:
        >>> parse_role("Threonine synthase (EC 4.2.3.1)")
        ParsedRole(text='Threonine synthase', ec_number='4.2.3.1', tc_number=None, hypo=False)
    """
    text = role or ""
    match = _COMMENT.match(text)
    if match:
        text = match.group(1)

    numbers: dict[str, str] = {}
    for kind, number in _ANNOTATION.findall(text):
        numbers.setdefault(kind.upper(), number)
    text = _SPACES.sub(" ", _ANNOTATION.sub("", text)).strip()

    hypo = not text or "hypothetical" in text.lower()
    return ParsedRole(
        text=text, ec_number=numbers.get("EC"), tc_number=numbers.get("TC"), hypo=hypo
    )


def normalize_role(role: str) -> str:
    """
    Reduce role text to the form used for its checksum.

    Lower case, without annotations, leading qualifiers such as "putative",
    or punctuation.
    """
    text = _ANNOTATION.sub(" ", role or "").lower()
    text = _NON_WORD.sub(" ", text).strip()
    return _QUALIFIER.sub("", text)


def role_checksum(role: str) -> str:
    """Checksum identifying a role: MD5 of the normalized text."""
    return md5_base64(normalize_role(role))


def format_role(ec_number: str | None, tc_number: str | None, text: str) -> str:
    """
    Rebuild a role description with its annotations.

    Example:
        >>> format_role("4.2.3.1", None, "Threonine synthase")
        'Threonine synthase (EC 4.2.3.1)'
    """
    description = text
    if ec_number:
        description += f" (EC {ec_number})"
    if tc_number:
        description += f" (TC {tc_number})"
    return description
