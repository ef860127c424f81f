"""Constants shared across modules."""
from __future__ import annotations

LISTX_ARGUMENT = "-listx"

TAGS_PROLOG = b'{"tags": ['
TAGS_SEPARATOR = b","
TAGS_EPILOG = b"]}"


class XmlName:
    TABLE = "table"
    TAG = "tag"
    DESC = "desc"
    NAME = "name"
    WRITABLE = "writable"
    TYPE = "type"
    LANG = "lang"
