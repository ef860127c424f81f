"""Errors raised while turning exiftool XML into the tags document."""
from __future__ import annotations


class EndOfInput(Exception):
    """The XML stream ended cleanly between top-level elements.

    Not a failure by itself: the streamer treats it as the end of the document
    when it is raised while looking for the next table.
    """


class TagStreamError(Exception):
    """Base error for failures while streaming tags."""


class XmlDecodeError(TagStreamError):
    """Raised when the XML stream is malformed or truncated."""


class MissingAttributeError(TagStreamError):
    """Raised when a required attribute is absent from an element."""


class TagDecodeError(TagStreamError):
    """Raised when a <tag> record cannot be decoded."""
