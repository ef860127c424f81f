"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TagDescription:
    """One <desc lang="..."> child of a <tag>."""

    lang: str
    value: str


@dataclass(frozen=True)
class RawTag:
    """Fields decoded from one <tag> element, before table context is applied."""

    name: str
    writable: bool
    type: str
    descriptions: tuple[TagDescription, ...] = ()
