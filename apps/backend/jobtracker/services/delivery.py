import logging
from pathlib import Path
from typing import Tuple, Union

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db import Resume
from jobtracker.storage import NotFound, Redirect, Stream, resolve

from .exceptions import ResumeContentUnavailableError
from .resume_service import get_owned_resume

logger = logging.getLogger(__name__)


class ResumeDeliveryService:
    """Serve resume content for preview and download."""

    def __init__(self, db: AsyncSession, legacy_root: str | Path) -> None:
        self.db = db
        self.legacy_root = legacy_root

    async def fetch(
        self, resume_id: int, requester_id: int
    ) -> Tuple[Resume, Union[Redirect, Stream]]:
        resume = await get_owned_resume(self.db, resume_id, requester_id, with_content=True)
        resolution = await run_in_threadpool(resolve, resume, self.legacy_root)
        if isinstance(resolution, NotFound):
            logger.warning(
                "resume %s is broken (%s): %s", resume_id, resume.storage_kind.value, resolution.reason
            )
            raise ResumeContentUnavailableError(resume_id)
        return resume, resolution


async def increment_download_count(
    session_factory: async_sessionmaker[AsyncSession], resume_id: int
) -> None:
    """Bump the usage counter; failures are logged, never raised."""
    try:
        async with session_factory() as session:
            await session.execute(
                update(Resume)
                .where(Resume.id == resume_id)
                .values(
                    download_count=Resume.download_count + 1,
                    updated_at=Resume.updated_at,
                )
            )
            await session.commit()
    except SQLAlchemyError as e:
        logger.error("failed to increment download count for resume %s: %s", resume_id, e)
