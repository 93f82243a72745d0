import logging
from typing import List

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from db import Resume
from jobtracker.storage import (
    Embedded,
    External,
    ObjectStore,
    StorageBackendError,
    StorageLocation,
    kind_of,
)

from .exceptions import (
    ResumeAccessDeniedError,
    ResumeNotFoundError,
    ResumeStorageError,
    ResumeTooLargeError,
    ResumeValidationError,
)
from .utils import (
    ALLOWED_EXTENSIONS,
    ALLOWED_MIME_TYPES,
    FORBIDDEN_FILENAME_PARTS,
    MAX_FILENAME_LENGTH,
    MAX_TITLE_LENGTH,
    effective_mime_type,
    file_extension,
    generate_stored_name,
)

logger = logging.getLogger(__name__)


async def get_owned_resume(
    db: AsyncSession, resume_id: int, requester_id: int, with_content: bool = False
) -> Resume:
    """Load a resume and check that *requester_id* owns it.

    Raises ResumeNotFoundError for unknown ids and ResumeAccessDeniedError
    when the record belongs to someone else.
    """
    stmt = select(Resume).where(Resume.id == resume_id)
    if with_content:
        stmt = stmt.options(undefer(Resume.blob_content))
    resume = (await db.execute(stmt)).scalar_one_or_none()
    if resume is None:
        raise ResumeNotFoundError(resume_id)
    if resume.owner_id != requester_id:
        logger.info("user %s denied access to resume %s", requester_id, resume_id)
        raise ResumeAccessDeniedError(resume_id)
    return resume


def validate_filename(filename: str) -> None:
    if len(filename) > MAX_FILENAME_LENGTH:
        raise ResumeValidationError(
            f"Filename is too long (maximum {MAX_FILENAME_LENGTH} characters)"
        )
    if any(part in filename for part in FORBIDDEN_FILENAME_PARTS):
        raise ResumeValidationError("Filename contains invalid characters")
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        raise ResumeValidationError(
            "File extension not allowed. Allowed extensions: "
            + ", ".join(sorted(ALLOWED_EXTENSIONS))
        )


class ResumeService:
    """Upload, list and delete resumes for their owners."""

    def __init__(
        self,
        db: AsyncSession,
        object_store: ObjectStore | None,
        max_upload_bytes: int = 5 * 1024 * 1024,
    ) -> None:
        self.db = db
        self.object_store = object_store
        self.max_upload_bytes = max_upload_bytes

    async def upload_resume(
        self,
        owner_id: int,
        file: UploadFile | None,
        title: str | None = None,
        description: str | None = None,
    ) -> Resume:
        if file is None or not file.filename:
            raise ResumeValidationError("No file uploaded")

        filename = file.filename
        validate_filename(filename)
        title = (title or "").strip() or filename
        if len(title) > MAX_TITLE_LENGTH:
            raise ResumeValidationError(
                f"Title is too long (maximum {MAX_TITLE_LENGTH} characters)"
            )
        mime_type = effective_mime_type(filename, file.content_type)
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ResumeValidationError(
                "File type not allowed. Allowed types: " + ", ".join(sorted(ALLOWED_MIME_TYPES))
            )

        content = await self._read_upload(file)
        stored_name = generate_stored_name(owner_id, filename)
        location = await self.place_content(content, stored_name, mime_type)

        resume = Resume(
            owner_id=owner_id,
            title=title,
            description=description or None,
            original_name=filename,
            stored_name=stored_name,
            size_bytes=len(content),
            mime_type=mime_type,
            download_count=0,
        )
        self._apply_location(resume, location)

        self.db.add(resume)
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("failed to persist resume %s: %s", stored_name, e)
            if isinstance(location, External) and location.object_id:
                await self._discard_external(location.object_id)
            raise ResumeStorageError("Resume upload failed") from e
        await self.db.refresh(resume)

        logger.info(
            "stored resume %s for user %s as %s (%d bytes)",
            resume.id,
            owner_id,
            resume.storage_kind.value,
            resume.size_bytes,
        )
        return resume

    async def _read_upload(self, file: UploadFile) -> bytes:
        try:
            content = await file.read(self.max_upload_bytes + 1)
        except OSError as e:
            logger.error("could not read uploaded file %s: %s", file.filename, e)
            raise ResumeStorageError("Uploaded file could not be read") from e
        if len(content) > self.max_upload_bytes:
            raise ResumeTooLargeError(
                f"File size too large. Maximum size is {self.max_upload_bytes // (1024 * 1024)}MB"
            )
        if not content:
            raise ResumeValidationError("File cannot be empty")
        return content

    async def place_content(
        self, content: bytes, stored_name: str, mime_type: str
    ) -> StorageLocation:
        """Return where *content* ended up: the object store or the record itself."""
        external = await self._try_external_upload(content, stored_name, mime_type)
        if external is not None:
            return external
        return Embedded(content=content)

    async def _try_external_upload(
        self, content: bytes, stored_name: str, mime_type: str
    ) -> External | None:
        if self.object_store is None:
            return None
        try:
            uploaded = await self.object_store.upload(content, stored_name, mime_type)
        except StorageBackendError as e:
            logger.warning("object store upload failed, storing %s in database: %s", stored_name, e)
            return None
        return External(url=uploaded.url, object_id=uploaded.object_id)

    @staticmethod
    def _apply_location(resume: Resume, location: StorageLocation) -> None:
        resume.storage_kind = kind_of(location)
        if isinstance(location, External):
            resume.external_url = location.url
            resume.external_object_id = location.object_id
        elif isinstance(location, Embedded):
            resume.blob_content = location.content
        else:
            raise ResumeStorageError("New uploads cannot be stored at a legacy location")

    async def list_resumes(self, owner_id: int) -> List[Resume]:
        result = await self.db.execute(
            select(Resume)
            .where(Resume.owner_id == owner_id)
            .order_by(Resume.created_at.desc(), Resume.id.desc())
        )
        return list(result.scalars().all())

    async def get_resume(self, resume_id: int, requester_id: int) -> Resume:
        return await get_owned_resume(self.db, resume_id, requester_id)

    async def delete_resume(self, resume_id: int, requester_id: int) -> None:
        resume = await get_owned_resume(self.db, resume_id, requester_id)
        if resume.external_object_id:
            await self._discard_external(resume.external_object_id)
        await self.db.delete(resume)
        await self.db.commit()
        logger.info("deleted resume %s for user %s", resume_id, requester_id)

    async def _discard_external(self, object_id: str) -> None:
        if self.object_store is None:
            logger.warning("object store not configured; leaving external object %s in place", object_id)
            return
        try:
            await self.object_store.delete(object_id)
        except StorageBackendError as e:
            logger.error("object store deletion failed for %s: %s", object_id, e)
