"""
Peer Resolution and Exclusion Filtering

Two small strategy objects handed to the graph builder:

    PeerResolver: maps a CIDR block to the display name of the logical peer it
        represents (e.g. several office ranges collapse into 'Work').
    ExclusionFilter: decides whether a node or peer name is hidden from the
        graph, using a list of regular expressions.

Both are built once per run from configuration and never mutated afterwards.
"""

import re
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Pattern


class PeerResolver:
    """
    CIDR to display-name lookup table.

    Unmapped CIDR blocks resolve to themselves. Lookups are exact string
    matches; no CIDR normalization is applied.

    Usage:
        resolver = PeerResolver({'127.0.0.1/32': 'Work'})
        resolver.resolve('127.0.0.1/32')   # 'Work'
        resolver.resolve('10.0.0.0/8')     # '10.0.0.0/8'
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._mapping = MappingProxyType(dict(mapping or {}))

    @property
    def mapping(self) -> Mapping[str, str]:
        """Read-only view of the CIDR to name table."""
        return self._mapping

    def resolve(self, cidr: str) -> str:
        return self._mapping.get(cidr, cidr)

    def __repr__(self) -> str:
        return f"PeerResolver({dict(self._mapping)!r})"


class ExclusionFilter:
    """
    Name filter built from a list of regular expressions.

    A name is excluded when any pattern matches anywhere in it (re.search
    semantics, case-sensitive). With no patterns nothing is excluded.

    Raises:
        ValueError: If a pattern is not a valid regular expression
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns: List[str] = list(patterns or [])
        self._compiled: List[Pattern[str]] = []
        for pattern in self.patterns:
            try:
                self._compiled.append(re.compile(pattern))
            except re.error as e:
                raise ValueError(f"Invalid exclude pattern {pattern!r}: {e}") from e

    def matches(self, name: str) -> bool:
        return any(regex.search(name) for regex in self._compiled)

    def __repr__(self) -> str:
        return f"ExclusionFilter({self.patterns!r})"
