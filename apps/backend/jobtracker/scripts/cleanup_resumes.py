"""Find resumes whose file cannot be served and repair or remove them.

Run out of band against the configured database::

    jobtracker-cleanup-resumes --dry-run
    python -m jobtracker.scripts.cleanup_resumes

Records still backed by a file under LEGACY_UPLOAD_DIR are migrated into
the database; records whose file is gone are deleted and their owners must
re-upload.
"""

import argparse
import sys

import anyio

from jobtracker.core import Settings, build_async_engine, build_session_factory, setup_logging
from jobtracker.schemas.pydantic.resume import CleanupSummaryModel
from jobtracker.services.cleanup import CleanupSummary, ResumeCleanupJob


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repair or remove broken resume records.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="report what would be migrated or deleted without writing",
    )
    parser.add_argument(
        "--legacy-dir",
        default=None,
        help="directory holding legacy uploads (defaults to LEGACY_UPLOAD_DIR)",
    )
    return parser.parse_args(argv)


async def run_cleanup(settings: Settings, dry_run: bool, legacy_dir: str | None = None) -> CleanupSummary:
    engine = build_async_engine(settings)
    try:
        job = ResumeCleanupJob(
            build_session_factory(engine), legacy_dir or settings.LEGACY_UPLOAD_DIR
        )
        return await job.run(dry_run=dry_run)
    finally:
        await engine.dispose()


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    summary = anyio.run(run_cleanup, Settings(), args.dry_run, args.legacy_dir)
    report = CleanupSummaryModel.model_validate(summary.as_dict())
    print(report.model_dump_json(by_alias=True, indent=2))
    return 1 if summary.failures else 0


if __name__ == "__main__":
    sys.exit(main())
