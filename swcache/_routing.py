from __future__ import annotations

import enum
import re
import typing as tp
from dataclasses import dataclass

__all__ = (
    "StrategyLabel",
    "PatternGroup",
    "PatternTable",
    "DEFAULT_STRATEGY",
    "DEFAULT_PATTERN_TABLE",
    "classify",
)


class StrategyLabel(str, enum.Enum):
    CACHE_FIRST = "cache-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"
    NETWORK_FIRST = "network-first"


DEFAULT_STRATEGY = StrategyLabel.STALE_WHILE_REVALIDATE
"""
Used by both the classifier (no pattern matched) and the router (label it
does not recognize). Keep the two in sync by referencing this constant only.
"""


@dataclass(frozen=True)
class PatternGroup:
    label: StrategyLabel
    patterns: tp.Tuple[tp.Pattern[str], ...]

    @classmethod
    def compile(cls, label: StrategyLabel, patterns: tp.Iterable[tp.Union[str, tp.Pattern[str]]]) -> "PatternGroup":
        return cls(
            label=label,
            patterns=tuple(re.compile(pattern) if isinstance(pattern, str) else pattern for pattern in patterns),
        )

    def matches(self, url: str) -> bool:
        return any(pattern.search(url) for pattern in self.patterns)


PatternTable = tp.Sequence[PatternGroup]

DEFAULT_PATTERN_TABLE: tp.Tuple[PatternGroup, ...] = (
    PatternGroup.compile(
        StrategyLabel.CACHE_FIRST,
        [
            r"\.(css|js|woff2?|ttf|eot)$",
            r"/static/",
            r"fonts\.googleapis\.com",
            r"fonts\.gstatic\.com",
        ],
    ),
    PatternGroup.compile(
        StrategyLabel.STALE_WHILE_REVALIDATE,
        [
            r"/api/",
            r"\.(?:png|jpg|jpeg|svg|gif|webp)$",
        ],
    ),
    PatternGroup.compile(
        StrategyLabel.NETWORK_FIRST,
        [
            r"/contact",
            r"/testimonials",
            r"/blog",
        ],
    ),
)


def classify(url: str, table: PatternTable = DEFAULT_PATTERN_TABLE) -> StrategyLabel:
    """
    Pick the caching strategy for ``url``.

    Groups are scanned in table order and the first group with a matching
    pattern wins, even when a later group holds a more specific pattern.
    When nothing matches, ``DEFAULT_STRATEGY`` is returned.

    Args:
        url: The full request URL.
        table: Ordered pattern groups, defaults to ``DEFAULT_PATTERN_TABLE``.

    Returns:
        The label of the strategy that should serve the request.

    Example:
        ```
        classify("https://example.com/static/app.js")  # StrategyLabel.CACHE_FIRST
        classify("https://example.com/blog/post-1")  # StrategyLabel.NETWORK_FIRST
        classify("https://example.com/about")  # StrategyLabel.STALE_WHILE_REVALIDATE
        ```
    """
    for group in table:
        if group.matches(url):
            return group.label
    return DEFAULT_STRATEGY
