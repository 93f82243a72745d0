from .exceptions import StorageBackendError
from .locations import (
    Embedded,
    External,
    LegacyLocal,
    NotFound,
    Redirect,
    Resolution,
    StorageKind,
    StorageLocation,
    Stream,
    kind_of,
)
from .object_store import ObjectStore, S3ObjectStore, UploadedObject, build_object_store
from .resolver import candidate_locations, legacy_file_path, read_legacy_file, resolve

__all__ = [
    "StorageBackendError",
    "Embedded",
    "External",
    "LegacyLocal",
    "NotFound",
    "Redirect",
    "Resolution",
    "StorageKind",
    "StorageLocation",
    "Stream",
    "kind_of",
    "ObjectStore",
    "S3ObjectStore",
    "UploadedObject",
    "build_object_store",
    "candidate_locations",
    "legacy_file_path",
    "read_legacy_file",
    "resolve",
]
