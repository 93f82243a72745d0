"""Typed storage locations and resolution outcomes for resume content.

A resume's bytes live in exactly one of three places when it is created:
an external object store, the ``blob_content`` column of the record, or (for
records that predate both) a file on local disk. Each place is modelled as
its own frozen dataclass so that code dispatching on a location can be
checked for exhaustiveness instead of pattern-matching on URL strings.
"""

import enum
from dataclasses import dataclass
from typing import Union


class StorageKind(str, enum.Enum):
    EXTERNAL = "external"
    EMBEDDED = "embedded"
    LEGACY_LOCAL = "legacy_local"


@dataclass(frozen=True)
class External:
    url: str
    object_id: str | None = None


@dataclass(frozen=True)
class Embedded:
    content: bytes

    def __repr__(self) -> str:
        return f"Embedded(<{len(self.content)} bytes>)"


@dataclass(frozen=True)
class LegacyLocal:
    path: str


StorageLocation = Union[External, Embedded, LegacyLocal]


def kind_of(location: StorageLocation) -> StorageKind:
    if isinstance(location, External):
        return StorageKind.EXTERNAL
    if isinstance(location, Embedded):
        return StorageKind.EMBEDDED
    if isinstance(location, LegacyLocal):
        return StorageKind.LEGACY_LOCAL
    raise TypeError(f"unknown storage location: {location!r}")


@dataclass(frozen=True)
class Redirect:
    url: str


@dataclass(frozen=True)
class Stream:
    content: bytes
    mime_type: str

    def __repr__(self) -> str:
        return f"Stream(<{len(self.content)} bytes>, {self.mime_type!r})"


@dataclass(frozen=True)
class NotFound:
    reason: str = "no retrievable content"


Resolution = Union[Redirect, Stream, NotFound]
