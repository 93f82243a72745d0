from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ResumeModel(BaseModel):
    id: int
    title: str
    description: str | None = None
    original_name: str = Field(..., alias="originalName")
    size_bytes: int = Field(..., alias="sizeBytes")
    mime_type: str = Field(..., alias="mimeType")
    storage: str
    download_count: int = Field(0, alias="downloadCount")
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")
    preview_url: str = Field(..., alias="previewUrl")
    download_url: str = Field(..., alias="downloadUrl")

    model_config = ConfigDict(populate_by_name=True)


class ResumeDeleteResponse(BaseModel):
    message: str


class CleanupFailureModel(BaseModel):
    resume_id: int = Field(..., alias="resumeId")
    error: str

    model_config = ConfigDict(populate_by_name=True)


class CleanupSummaryModel(BaseModel):
    scanned: int
    migrated: int
    deleted: int
    failures: List[CleanupFailureModel] = []
    dry_run: bool = Field(False, alias="dryRun")

    model_config = ConfigDict(populate_by_name=True)
