from .resume import (
    CleanupFailureModel,
    CleanupSummaryModel,
    ResumeDeleteResponse,
    ResumeModel,
)

__all__ = [
    "CleanupFailureModel",
    "CleanupSummaryModel",
    "ResumeDeleteResponse",
    "ResumeModel",
]
