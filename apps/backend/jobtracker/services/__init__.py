from .exceptions import (
    ResumeServiceError,
    ResumeValidationError,
    ResumeTooLargeError,
    ResumeNotFoundError,
    ResumeAccessDeniedError,
    ResumeContentUnavailableError,
    ResumeStorageError,
)
from .resume_service import ResumeService, get_owned_resume
from .delivery import ResumeDeliveryService, increment_download_count
from .cleanup import ResumeCleanupJob, CleanupSummary, CleanupFailure

__all__ = [
    "ResumeServiceError",
    "ResumeValidationError",
    "ResumeTooLargeError",
    "ResumeNotFoundError",
    "ResumeAccessDeniedError",
    "ResumeContentUnavailableError",
    "ResumeStorageError",
    "ResumeService",
    "get_owned_resume",
    "ResumeDeliveryService",
    "increment_download_count",
    "ResumeCleanupJob",
    "CleanupSummary",
    "CleanupFailure",
]
