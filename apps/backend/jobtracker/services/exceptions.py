class ResumeServiceError(Exception):
    """Base class for resume storage failures surfaced to callers."""


class ResumeValidationError(ResumeServiceError):
    pass


class ResumeTooLargeError(ResumeValidationError):
    pass


class ResumeNotFoundError(ResumeServiceError):
    def __init__(self, resume_id: int) -> None:
        super().__init__(f"Resume {resume_id} not found")
        self.resume_id = resume_id


class ResumeAccessDeniedError(ResumeServiceError):
    def __init__(self, resume_id: int) -> None:
        super().__init__("Access denied - you can only access your own resumes")
        self.resume_id = resume_id


class ResumeContentUnavailableError(ResumeServiceError):
    """The record exists but none of its storage locations yield content."""

    def __init__(self, resume_id: int) -> None:
        super().__init__(
            "Resume file not found. This resume has no retrievable file; please re-upload it."
        )
        self.resume_id = resume_id


class ResumeStorageError(ResumeServiceError):
    """The uploaded file could not be read or stored anywhere."""
