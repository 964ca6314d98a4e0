"""
Wildcard key patterns for bulk cache invalidation.

A pattern is a cache key in which `*` stands for any run of characters
(including none). Every other character is literal and the pattern is
anchored at both ends, so `prs:*acme/widgets*` matches any key that starts
with `prs:` and contains `acme/widgets`.

The same predicate is rendered three ways so each tier applies identical
semantics:

- a compiled regex for the hot tier and the Redis post-filter
- an escaped SQL LIKE expression for the SQL durable tier
- an escaped Redis SCAN glob for the Redis durable tier

Substring matching is intentionally loose: `prs:*acme/w*` also matches keys
for `acme/widgets-v2`. Callers that need exact repository scoping must build
a tighter pattern.
"""

import re
from dataclasses import dataclass
from functools import cached_property

WILDCARD = "*"
MATCH_ALL = "*"

LIKE_ESCAPE = "\\"
_LIKE_SPECIAL = ("\\", "%", "_")
_GLOB_SPECIAL = ("\\", "*", "?", "[", "]")


def _escape(text: str, special: tuple[str, ...], escape: str = "\\") -> str:
    for char in special:
        text = text.replace(char, escape + char)
    return text


@dataclass(frozen=True)
class KeyPattern:
    """
    Parsed invalidation pattern.

    Usage:
        pattern = KeyPattern("prs:*acme/widgets*")
        pattern.matches("prs:acme/widgets:open")  # True
        pattern.to_like()                          # "prs:%acme/widgets%"
    """

    raw: str

    def __post_init__(self):
        if not isinstance(self.raw, str) or not self.raw:
            raise ValueError("cache key pattern must be a non-empty string")

    @property
    def matches_everything(self) -> bool:
        return set(self.raw) == {WILDCARD}

    @property
    def is_literal(self) -> bool:
        return WILDCARD not in self.raw

    @cached_property
    def literals(self) -> list[str]:
        """Literal segments between wildcards (first/last may be empty)."""
        return self.raw.split(WILDCARD)

    @cached_property
    def regex(self) -> "re.Pattern[str]":
        body = ".*".join(re.escape(part) for part in self.literals)
        return re.compile(f"^{body}$", re.DOTALL)

    def matches(self, key: str) -> bool:
        return self.regex.match(key) is not None

    def to_like(self) -> str:
        """SQL LIKE expression; use with `escape=LIKE_ESCAPE`."""
        return "%".join(_escape(part, _LIKE_SPECIAL, LIKE_ESCAPE) for part in self.literals)

    def to_glob(self) -> str:
        """Redis SCAN MATCH glob."""
        return "*".join(_escape(part, _GLOB_SPECIAL) for part in self.literals)

    def __str__(self) -> str:
        return self.raw


def compile_pattern(pattern: "str | KeyPattern") -> KeyPattern:
    if isinstance(pattern, KeyPattern):
        return pattern
    return KeyPattern(pattern)


__all__ = ["KeyPattern", "compile_pattern", "MATCH_ALL", "LIKE_ESCAPE"]
