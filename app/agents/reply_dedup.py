"""Near-duplicate removal for suggested reply buttons."""

import re
from typing import Dict, Iterable, List, Optional, Tuple

# Leading interjections that do not change what a reply means ("오 좋아요" == "좋아요").
FILLER_PREFIXES: Tuple[str, ...] = ("오", "아", "이")

_WHITESPACE = re.compile(r"\s+")
_FILLER_PREFIX = re.compile(r"^(?:%s)\s+" % "|".join(map(re.escape, FILLER_PREFIXES)))


def normalize_reply(reply: str) -> str:
    s = _WHITESPACE.sub(" ", reply.strip().lower())
    return _FILLER_PREFIX.sub("", s, count=1).strip()


def dedupe_replies(replies: Optional[Iterable[str]]) -> List[str]:
    """
    Keep one reply per normalized form.

    The shortest literal of each group wins (first seen on ties), survivors keep
    the order in which they first appeared, and replies that normalize to
    nothing are dropped.
    """
    if not replies:
        return []

    # normalized form -> (position of the representative, representative)
    groups: Dict[str, Tuple[int, str]] = {}
    for position, reply in enumerate(replies):
        if reply is None:
            continue
        literal = str(reply).strip()
        key = normalize_reply(literal)
        if not key:
            continue
        current = groups.get(key)
        if current is None or len(literal) < len(current[1]):
            groups[key] = (position, literal)

    return [literal for _, literal in sorted(groups.values(), key=lambda entry: entry[0])]
