from pydantic import BaseModel, Field

from exifserve.app.domain.models import RawTag


class TagRecord(BaseModel):
    """One element of the `tags` array. `name` only feeds `path` and is never serialized."""

    name: str = Field("", exclude=True)
    writable: bool
    path: str
    group: str
    description: dict[str, str]
    type: str

    @classmethod
    def from_raw(cls, raw: RawTag, *, table_name: str) -> "TagRecord":
        return cls(
            name=raw.name,
            writable=raw.writable,
            path=f"{table_name}:{raw.name}",
            group=table_name,
            description={d.lang: d.value for d in raw.descriptions},
            type=raw.type,
        )
