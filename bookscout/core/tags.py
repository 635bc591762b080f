"""Tag normalization and suggestion ranking."""

import re
from collections import Counter
from typing import Iterable, List, Optional, Sequence

SUGGESTED_TAGS = (
    "Adventure", "Funny", "Scary", "Animals", "Friendship",
    "Family", "School", "Fantasy", "Magic", "Mystery",
    "Nature", "Science", "History", "Sports", "Biography",
    "Comics", "Fairytale", "Superhero", "Outer Space", "Robots",
)

_DISALLOWED_CHARS = re.compile(r"[^a-zA-Z\s]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_tag(tag: Optional[str]) -> str:
    """Return the canonical form of one tag, or "" if nothing usable remains.

    Only ASCII letters and whitespace survive; whitespace is trimmed and
    collapsed, and every word is title-cased ("wild robot" -> "Wild Robot").
    """
    if not tag:
        return ""

    clean = _DISALLOWED_CHARS.sub("", tag)
    clean = _WHITESPACE_RUN.sub(" ", clean.strip())
    if not clean:
        return ""

    return " ".join(word[0].upper() + word[1:].lower() for word in clean.split(" "))


def sanitize_tag_list(raw: Optional[str]) -> str:
    """Sanitize a comma-separated tag string for storage.

    Empty pieces are dropped. Order is kept and duplicates are not removed.
    """
    pieces = (sanitize_tag(piece) for piece in (raw or "").split(","))
    return ",".join(piece for piece in pieces if piece)


def split_tags(stored: Optional[str]) -> List[str]:
    """Split a stored tag string into its non-empty, trimmed tags."""
    if not stored:
        return []
    return [tag.strip() for tag in stored.split(",") if tag.strip()]


def _collation_key(tag: str) -> tuple[str, str]:
    # Case-insensitive first, then lowercase before uppercase
    return (tag.casefold(), tag.swapcase())


def rank_tags(
    tag_strings: Iterable[Optional[str]],
    catalog: Sequence[str] = SUGGESTED_TAGS,
) -> List[str]:
    """Merge an account's stored tag strings with the catalog and rank them.

    Tags are ordered by usage count (descending), then alphabetically.
    Catalog tags that were never used are included with a count of zero.
    """
    counts: Counter[str] = Counter()
    for stored in tag_strings:
        counts.update(split_tags(stored))

    candidates = set(counts) | set(catalog)
    return sorted(candidates, key=lambda tag: (-counts[tag], _collation_key(tag)))
