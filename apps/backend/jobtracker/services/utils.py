import hashlib
import mimetypes
import secrets
import time
from pathlib import Path
from typing import Union

CHUNK_SIZE = 128 * 1024  # 128 KiB

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "application/rtf",
    }
)
ALLOWED_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".txt", ".rtf"})
MAX_FILENAME_LENGTH = 255
MAX_TITLE_LENGTH = 255
FORBIDDEN_FILENAME_PARTS = ("..", "/", "\\", ":", "*", "?", '"', "<", ">", "|")

_EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".rtf": "application/rtf",
}


def file_sha256(data_or_path: Union[bytes, str, Path]) -> str:
    """Return SHA-256 hex digest for bytes or file."""
    hasher = hashlib.sha256()
    if isinstance(data_or_path, (str, Path)):
        path = Path(data_or_path)
        with path.open('rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    elif isinstance(data_or_path, (bytes, bytearray)):
        hasher.update(data_or_path)
    else:
        raise TypeError("data_or_path must be bytes or path-like")
    return hasher.hexdigest()


def resume_etag(resume_id: int, size_bytes: int) -> str:
    """Return a quoted strong ETag for a resume's id and size."""
    return '"%s"' % file_sha256(f"{resume_id}:{size_bytes}".encode())[:32]


def file_extension(filename: str) -> str:
    return Path(filename).suffix.lower()


def effective_mime_type(filename: str, declared: str | None) -> str:
    """Return the declared type, or one guessed from *filename* when the
    client sent nothing useful."""
    declared = (declared or "").split(";", 1)[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    ext = file_extension(filename)
    if ext in _EXTENSION_MIME_TYPES:
        return _EXTENSION_MIME_TYPES[ext]
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def generate_stored_name(owner_id: int, original_name: str) -> str:
    """Return a collision-resistant storage key like
    ``resumes/user_7/1722500000000_3f9a0c1d2e4b.pdf``."""
    timestamp = int(time.time() * 1000)
    token = secrets.token_hex(6)
    return f"resumes/user_{owner_id}/{timestamp}_{token}{file_extension(original_name)}"
