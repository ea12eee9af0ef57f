"""
Name-to-prefix transform and prefix bookkeeping for magic names.

The transform turns a human-readable name into a short mnemonic prefix:

    >>> magic_name("Threonine synthase (EC 4.2.3.1)").id
    'ThreSynt'
    >>> magic_name("Iron acquisition in Vibrio").id
    'IronAcquVibr'

Allocators accept any callable with the same contract (name -> MagicName),
so loaders can plug in entity-specific transforms.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from shrub.core.ids.models import MagicName

Namer = Callable[[str], MagicName]

UNKNOWN_PREFIX = "Unk"
WORDS_PER_PREFIX = 3
LETTERS_PER_WORD = 4

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "at", "by", "for", "from", "in",
        "of", "on", "or", "the", "to", "via", "with",
    }
)

_BRACKETED = re.compile(r"\([^()]*\)|\[[^\[\]]*\]")
_WORD = re.compile(r"[A-Za-z]+")
_TRAILING_DIGITS = re.compile(r"^(.*?)(\d+)$")


def magic_name(name: str) -> MagicName:
    """
    Default name-to-prefix transform.

    Drops bracketed text (EC/TC numbers, qualifiers), then joins the first
    four letters of each of the first three significant words, capitalized.
    Digits never appear in the prefix, so a trailing number on a stored ID
    is always a suffix. The suggested suffix is None (bare prefix).

    Args:
        name: Human-readable entity name

    Returns:
        MagicName with the derived prefix
    """
    text = _BRACKETED.sub(" ", name or "")
    words = [w for w in _WORD.findall(text) if w.lower() not in STOP_WORDS]
    prefix = "".join(w[:LETTERS_PER_WORD].capitalize() for w in words[:WORDS_PER_PREFIX])
    return MagicName(prefix=prefix or UNKNOWN_PREFIX)


def split_magic_id(entity_id: str) -> tuple[str, int]:
    """
    Split a stored ID into its prefix and the next suffix to issue.

    A trailing digit run is the suffix; the next one is that plus one. An ID
    without trailing digits is a bare prefix, whose next suffix is 2. An ID
    made only of digits has no prefix to split off and counts as bare.

    Example:
        >>> split_magic_id("ThreSynt")
        ('ThreSynt', 2)
        >>> split_magic_id("ThreSynt12")
        ('ThreSynt', 13)
    """
    match = _TRAILING_DIGITS.match(entity_id)
    if match and match.group(1):
        return match.group(1), int(match.group(2)) + 1
    return entity_id, 2


def update_prefix_map(prefix_map: dict[str, int], entity_id: str) -> None:
    """
    Record an existing ID in a prefix → next-suffix map.

    Keeps the largest next suffix seen for each prefix.
    """
    prefix, next_suffix = split_magic_id(entity_id)
    if prefix_map.get(prefix, 0) < next_suffix:
        prefix_map[prefix] = next_suffix
