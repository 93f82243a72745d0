"""Batch reconciliation of resumes whose content cannot be served.

A resume is *broken* when it only points at a legacy on-disk file: no
external URL and no embedded bytes. For each broken record the job either
moves the file's bytes into the database (when the file is still on disk)
or deletes the record so the owner can re-upload. Each record is handled in
its own session, so one failure (including a record deleted by a live
request mid-run) never aborts the batch.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import structlog
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import undefer

from db import Resume
from jobtracker.storage import StorageKind, legacy_file_path

log = structlog.get_logger(__name__)


@dataclass
class CleanupFailure:
    resume_id: int
    error: str


@dataclass
class CleanupSummary:
    scanned: int = 0
    migrated: int = 0
    deleted: int = 0
    failures: List[CleanupFailure] = field(default_factory=list)
    dry_run: bool = False

    def as_dict(self) -> dict:
        return {
            "scanned": self.scanned,
            "migrated": self.migrated,
            "deleted": self.deleted,
            "failures": [
                {"resumeId": f.resume_id, "error": f.error} for f in self.failures
            ],
            "dryRun": self.dry_run,
        }


def broken_resume_filter():
    return and_(
        Resume.legacy_path.is_not(None),
        Resume.legacy_path != "",
        or_(Resume.external_url.is_(None), Resume.external_url == ""),
        or_(Resume.blob_content.is_(None), func.length(Resume.blob_content) == 0),
    )


def _load_legacy_bytes(legacy_path: str, legacy_root: Path) -> bytes | None:
    # missing or empty -> None; present but unreadable -> OSError
    path = legacy_file_path(legacy_path, legacy_root)
    if path is None or not path.is_file():
        return None
    content = path.read_bytes()
    return content or None


class ResumeCleanupJob:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        legacy_root: str | Path,
    ) -> None:
        self.session_factory = session_factory
        self.legacy_root = Path(legacy_root)

    async def find_broken_ids(self) -> List[int]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Resume.id).where(broken_resume_filter()).order_by(Resume.id)
            )
            return list(result.scalars().all())

    async def run(self, dry_run: bool = False) -> CleanupSummary:
        summary = CleanupSummary(dry_run=dry_run)
        broken_ids = await self.find_broken_ids()
        summary.scanned = len(broken_ids)
        log.info("resume_cleanup_started", broken=summary.scanned, dry_run=dry_run)

        for resume_id in broken_ids:
            try:
                outcome = await self._reconcile(resume_id, dry_run)
            except (SQLAlchemyError, OSError) as e:
                log.error("resume_cleanup_failed", resume_id=resume_id, error=str(e))
                summary.failures.append(CleanupFailure(resume_id, str(e)))
                continue

            if outcome == "migrated":
                summary.migrated += 1
            elif outcome == "deleted":
                summary.deleted += 1
            elif outcome == "vanished":
                summary.failures.append(CleanupFailure(resume_id, "record no longer exists"))

        log.info(
            "resume_cleanup_finished",
            scanned=summary.scanned,
            migrated=summary.migrated,
            deleted=summary.deleted,
            failed=len(summary.failures),
            dry_run=dry_run,
        )
        return summary

    async def _reconcile(self, resume_id: int, dry_run: bool) -> str:
        async with self.session_factory() as session:
            resume = (
                await session.execute(
                    select(Resume)
                    .where(Resume.id == resume_id)
                    .options(undefer(Resume.blob_content))
                )
            ).scalar_one_or_none()
            if resume is None:
                log.warning("resume_cleanup_vanished", resume_id=resume_id)
                return "vanished"
            if resume.external_url or resume.blob_content:
                log.info("resume_cleanup_already_fixed", resume_id=resume_id)
                return "skipped"

            content = await run_in_threadpool(
                _load_legacy_bytes, resume.legacy_path, self.legacy_root
            )
            if content is not None:
                if not dry_run:
                    resume.blob_content = content
                    resume.storage_kind = StorageKind.EMBEDDED
                    resume.size_bytes = len(content)
                    await session.commit()
                log.info(
                    "resume_migrated_to_database",
                    resume_id=resume_id,
                    legacy_path=resume.legacy_path,
                    size_bytes=len(content),
                    dry_run=dry_run,
                )
                return "migrated"

            if not dry_run:
                await session.delete(resume)
                await session.commit()
            log.warning(
                "resume_removed_needs_reupload",
                resume_id=resume_id,
                owner_id=resume.owner_id,
                title=resume.title,
                legacy_path=resume.legacy_path,
                dry_run=dry_run,
            )
            return "deleted"
