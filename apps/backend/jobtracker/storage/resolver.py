import logging
from pathlib import Path
from typing import Iterator

from .locations import (
    Embedded,
    External,
    LegacyLocal,
    NotFound,
    Redirect,
    Resolution,
    StorageLocation,
    Stream,
)

logger = logging.getLogger(__name__)

LEGACY_PREFIXES = ("local://", "/uploads/")


def legacy_file_path(legacy_path: str, legacy_root: str | Path) -> Path | None:
    """Map a stored legacy reference to a path on disk.

    ``/uploads/<name>``, ``local://<name>`` and bare relative names live under
    *legacy_root*. Absolute paths are accepted only when they point inside
    *legacy_root*. Anything that resolves outside it maps to None.
    """
    root = Path(legacy_root).resolve()
    for prefix in LEGACY_PREFIXES:
        if legacy_path.startswith(prefix):
            candidate = root / legacy_path[len(prefix):]
            break
    else:
        candidate = Path(legacy_path)
        if not candidate.is_absolute():
            candidate = root / candidate

    candidate = candidate.resolve()
    if not candidate.is_relative_to(root):
        return None
    return candidate


def read_legacy_file(legacy_path: str, legacy_root: str | Path) -> bytes | None:
    """Return the file's bytes, or None when it is missing, unreadable or empty."""
    path = legacy_file_path(legacy_path, legacy_root)
    if path is None or not path.is_file():
        return None
    try:
        content = path.read_bytes()
    except OSError as e:
        logger.warning("legacy file %s unreadable: %s", path, e)
        return None
    return content or None


def candidate_locations(resume) -> Iterator[StorageLocation]:
    """Yield the record's populated locations, most authoritative first."""
    if resume.external_url:
        yield External(url=resume.external_url, object_id=resume.external_object_id)
    if resume.blob_content:
        yield Embedded(content=resume.blob_content)
    if resume.legacy_path:
        yield LegacyLocal(path=resume.legacy_path)


def resolve(resume, legacy_root: str | Path) -> Resolution:
    """Pick the access strategy for *resume*.

    External storage wins whenever a URL is present, even if stale blob data
    is also on the record. ``blob_content`` must already be loaded.
    """
    for location in candidate_locations(resume):
        if isinstance(location, External):
            return Redirect(url=location.url)
        if isinstance(location, Embedded):
            return Stream(content=location.content, mime_type=resume.mime_type)
        if isinstance(location, LegacyLocal):
            content = read_legacy_file(location.path, legacy_root)
            if content is not None:
                return Stream(content=content, mime_type=resume.mime_type)
            continue
        raise TypeError(f"unknown storage location: {location!r}")
    return NotFound()
