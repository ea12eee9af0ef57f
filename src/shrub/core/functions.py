"""
Functional assignments.

A function is the full annotation text of a protein, made of one or more
roles joined by a separator:

    Threonine synthase (EC 4.2.3.1) / Homoserine kinase (EC 2.7.1.39) # note

Separators are " / " (multifunctional), " @ " (one domain, several roles)
and "; " (uncertain). A function is identified by its separator and the
checksums of its roles, so role order and spelling variants that normalize
alike do not create new functions.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from shrub.core.checksums import md5_base64
from shrub.core.ids import DEFAULT_MAX_ATTEMPTS, create_allocator
from shrub.core.loader import DBLoader
from shrub.core.roles import RoleManager, create_role_manager, role_checksum

logger = logging.getLogger(__name__)

MAX_ROLE_LENGTH = 250
HYPOTHETICAL = "hypothetical protein"

_COMMENT = re.compile(r"^(.+?)\s*[#!](.+)$")
_SUSPICIOUS = re.compile(r"\b(?:similarit|blast\b|fasta|identity)|%|E=", re.IGNORECASE)
_SEPARATOR = re.compile(r"\s*(\s@|\s/|;)\s+")
_WORD = re.compile(r"\w")


@dataclass
class ParsedFunction:
    """A function statement split into roles."""

    statement: str
    sep: str = " "
    roles: dict[str, str] = field(default_factory=dict)
    comment: str = ""
    malformed: bool = False

    @property
    def checksum(self) -> str:
        return function_checksum(self.sep, self.roles.values())


def function_checksum(sep: str, role_checksums: Iterable[str]) -> str:
    """Checksum over the separator and the sorted role checksums."""
    return md5_base64(sep + "\t".join(sorted(role_checksums)))


def parse_function(function: str | None) -> ParsedFunction:
    """
    Parse function text into its statement, separator, roles and comment.

    Empty text and "hypothetical protein" parse to a function with no
    roles. Text that looks like a similarity report (blast, identity, %,
    E=) or contains an overlong role is marked malformed and has no roles.

    Example:
        >>> parsed = parse_function("Threonine synthase / Homoserine kinase")
        >>> parsed.sep, sorted(parsed.roles)
        ('/', ['Homoserine kinase', 'Threonine synthase'])
    """
    statement = function or ""
    comment = ""
    match = _COMMENT.match(statement)
    if match:
        statement, comment = match.group(1), match.group(2).strip()

    parsed = ParsedFunction(statement=statement, comment=comment)
    if not statement or statement == HYPOTHETICAL:
        return parsed
    if _SUSPICIOUS.search(function or ""):
        parsed.malformed = True
        return parsed

    parts = _SEPARATOR.split(statement)
    roles = parts[0::2]
    if any(len(role) > MAX_ROLE_LENGTH for role in roles):
        parsed.malformed = True
        return parsed
    if len(parts) > 1:
        parsed.sep = parts[1][-1]
        roles = [role for role in roles if _WORD.search(role)]

    parsed.roles = {role: role_checksum(role) for role in roles}
    return parsed


class FunctionManager:
    """
    Find or insert functions and link them to their roles.

    Functions get counter IDs with `checksum` as the check field. In
    exclusive mode the role manager writes roles only when closed, so the
    Function2Role links are held back until close() as well.

    Args:
        loader: Loader to insert through
        exclusive: Whether this loader is the only writer
        roles: Role manager to use (one is created if omitted)
        max_attempts: Retry ceiling for shared inserts
    """

    def __init__(
        self,
        loader: DBLoader,
        *,
        exclusive: bool,
        roles: RoleManager | None = None,
        max_attempts: int | None = DEFAULT_MAX_ATTEMPTS,
        start: int = 1,
    ) -> None:
        self._loader = loader
        self._stats = loader.stats
        self._exclusive = exclusive
        self._roles = roles or create_role_manager(
            loader, exclusive=exclusive, max_attempts=max_attempts
        )
        self._functions = create_allocator(
            "Function",
            loader,
            magic=False,
            exclusive=exclusive,
            check_field="checksum",
            start=start,
            max_attempts=max_attempts,
        )
        self._pending_links: list[tuple[int, str]] = []

    @property
    def roles(self) -> RoleManager:
        return self._roles

    def process(self, function: str | None) -> int | None:
        """
        Return the ID of a function, inserting it and its roles if new.

        Returns:
            Function ID, or None for a malformed function
        """
        parsed = parse_function(function)
        if parsed.malformed:
            self._stats.add("functionMalformed")
            logger.debug("Skipping malformed function %r", function)
            return None

        checksum = parsed.checksum
        function_id = self._functions.check(checksum)
        if function_id is not None:
            return function_id

        role_ids = [
            self._roles.process(role, role_check)[0] for role, role_check in parsed.roles.items()
        ]
        function_id = self._functions.insert(
            {
                "checksum": checksum,
                "sep": parsed.sep,
                "description": parsed.statement,
                "comment": parsed.comment or None,
            }
        )
        for role_id in role_ids:
            self._link(function_id, role_id)
        return function_id

    def _link(self, function_id: int, role_id: str) -> None:
        self._stats.add("function2role")
        if self._exclusive:
            self._pending_links.append((function_id, role_id))
        else:
            self._loader.insert_object("Function2Role", from_link=function_id, to_link=role_id)

    def close(self) -> None:
        """Close the role manager, then write any held-back links."""
        self._roles.close()
        for function_id, role_id in self._pending_links:
            self._loader.insert_object("Function2Role", from_link=function_id, to_link=role_id)
        self._pending_links.clear()
