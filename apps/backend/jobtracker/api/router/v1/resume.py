import logging
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import List, Tuple
from urllib.parse import quote

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from db import Resume
from jobtracker.api.deps import get_object_store, get_requester_id
from jobtracker.core import get_db_session
from jobtracker.schemas.pydantic.resume import ResumeDeleteResponse, ResumeModel
from jobtracker.services import (
    ResumeAccessDeniedError,
    ResumeContentUnavailableError,
    ResumeDeliveryService,
    ResumeNotFoundError,
    ResumeService,
    ResumeServiceError,
    ResumeTooLargeError,
    ResumeValidationError,
    increment_download_count,
)
from jobtracker.services.utils import resume_etag
from jobtracker.storage import ObjectStore, Redirect

resume_router = APIRouter()
logger = logging.getLogger(__name__)

# previews are embedded by other origins (iframes, PDF viewers)
PREVIEW_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type, Range",
    "Access-Control-Expose-Headers": "Content-Disposition, Content-Length, Content-Range, ETag, Last-Modified",
    "Access-Control-Max-Age": "86400",
}


class UnsatisfiableRange(ValueError):
    pass


def _http_error(exc: ResumeServiceError, headers: dict | None = None) -> HTTPException:
    if isinstance(exc, ResumeTooLargeError):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    elif isinstance(exc, ResumeValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ResumeAccessDeniedError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, (ResumeNotFoundError, ResumeContentUnavailableError)):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc), headers=headers)


def content_disposition(disposition: str, filename: str) -> str:
    """Build a Content-Disposition value, adding RFC 5987 ``filename*`` for
    names that are not plain ASCII."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    value = f'{disposition}; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename)}"
    return value


def http_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def parse_byte_range(header: str, size: int) -> Tuple[int, int] | None:
    """Return the inclusive (start, end) of a single ``bytes=`` range.

    Malformed or multi-range headers return None so the whole body is sent.
    """
    unit, _, spec = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in spec:
        return None
    start_s, sep, end_s = spec.strip().partition("-")
    if not sep:
        return None
    try:
        start = int(start_s) if start_s else None
        end = int(end_s) if end_s else None
    except ValueError:
        return None

    if start is None:
        if end is None:
            return None
        # suffix form: the last *end* bytes
        if end <= 0 or size == 0:
            raise UnsatisfiableRange(header)
        return max(size - end, 0), size - 1
    if end is None:
        end = size - 1
    if start >= size or start > end:
        raise UnsatisfiableRange(header)
    return start, min(end, size - 1)


def etag_matches(if_none_match: str, etag: str) -> bool:
    """Weak comparison of *etag* against an ``If-None-Match`` header value."""
    candidates = [tag.strip() for tag in if_none_match.split(",")]
    if "*" in candidates:
        return True
    return any(tag.removeprefix("W/") == etag for tag in candidates if tag)


def _to_model(request: Request, resume: Resume) -> ResumeModel:
    return ResumeModel(
        id=resume.id,
        title=resume.title,
        description=resume.description,
        original_name=resume.original_name,
        size_bytes=resume.size_bytes,
        mime_type=resume.mime_type,
        storage=resume.storage_kind.value,
        download_count=resume.download_count,
        created_at=resume.created_at,
        updated_at=resume.updated_at,
        preview_url=str(request.app.url_path_for("preview_resume", resume_id=resume.id)),
        download_url=str(request.app.url_path_for("download_resume", resume_id=resume.id)),
    )


@resume_router.post(
    "",
    response_model=ResumeModel,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a resume",
)
async def upload_resume(
    request: Request,
    file: UploadFile | None = File(None),
    title: str | None = Form(None),
    description: str | None = Form(None),
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore | None = Depends(get_object_store),
):
    service = ResumeService(
        db, object_store, max_upload_bytes=request.app.state.settings.MAX_UPLOAD_BYTES
    )
    try:
        resume = await service.upload_resume(requester_id, file, title, description)
    except ResumeServiceError as e:
        logger.info("resume upload rejected for user %s: %s", requester_id, e)
        raise _http_error(e)
    return _to_model(request, resume)


@resume_router.get("", response_model=List[ResumeModel], summary="List my resumes")
async def list_resumes(
    request: Request,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
):
    resumes = await ResumeService(db, None).list_resumes(requester_id)
    return [_to_model(request, resume) for resume in resumes]


@resume_router.get("/{resume_id}", response_model=ResumeModel, summary="Get resume info")
async def get_resume(
    resume_id: int,
    request: Request,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        resume = await ResumeService(db, None).get_resume(resume_id, requester_id)
    except ResumeServiceError as e:
        raise _http_error(e)
    return _to_model(request, resume)


@resume_router.options(
    "/{resume_id}/preview",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="CORS preflight for previews",
)
async def preview_preflight(resume_id: int):
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=PREVIEW_CORS_HEADERS)


@resume_router.get("/{resume_id}/preview", summary="Preview a resume inline")
async def preview_resume(
    resume_id: int,
    request: Request,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
):
    settings = request.app.state.settings
    service = ResumeDeliveryService(db, settings.LEGACY_UPLOAD_DIR)
    try:
        resume, resolution = await service.fetch(resume_id, requester_id)
    except ResumeServiceError as e:
        raise _http_error(e, headers=PREVIEW_CORS_HEADERS)

    if isinstance(resolution, Redirect):
        return RedirectResponse(
            resolution.url, status_code=status.HTTP_302_FOUND, headers=PREVIEW_CORS_HEADERS
        )

    etag = resume_etag(resume.id, resume.size_bytes)
    headers = {
        **PREVIEW_CORS_HEADERS,
        "Content-Disposition": content_disposition("inline", resume.original_name),
        "Accept-Ranges": "bytes",
        "Cache-Control": f"private, max-age={settings.PREVIEW_CACHE_MAX_AGE}",
        "ETag": etag,
    }
    if resume.updated_at is not None:
        headers["Last-Modified"] = http_date(resume.updated_at)

    if etag_matches(request.headers.get("if-none-match", ""), etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    content = resolution.content
    range_header = request.headers.get("range")
    if range_header:
        try:
            byte_range = parse_byte_range(range_header, len(content))
        except UnsatisfiableRange:
            return Response(
                status_code=status.HTTP_416_REQUESTED_RANGE_NOT_SATISFIABLE,
                headers={**headers, "Content-Range": f"bytes */{len(content)}"},
            )
        if byte_range is not None:
            start, end = byte_range
            headers["Content-Range"] = f"bytes {start}-{end}/{len(content)}"
            return Response(
                content[start : end + 1],
                status_code=status.HTTP_206_PARTIAL_CONTENT,
                media_type=resolution.mime_type,
                headers=headers,
            )

    return Response(content, media_type=resolution.mime_type, headers=headers)


@resume_router.get("/{resume_id}/download", summary="Download a resume")
async def download_resume(
    resume_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
):
    service = ResumeDeliveryService(db, request.app.state.settings.LEGACY_UPLOAD_DIR)
    try:
        resume, resolution = await service.fetch(resume_id, requester_id)
    except ResumeServiceError as e:
        raise _http_error(e)

    background_tasks.add_task(
        increment_download_count, request.app.state.session_factory, resume.id
    )

    if isinstance(resolution, Redirect):
        return RedirectResponse(resolution.url, status_code=status.HTTP_302_FOUND)

    return Response(
        resolution.content,
        media_type=resolution.mime_type,
        headers={
            "Content-Disposition": content_disposition("attachment", resume.original_name),
            "Cache-Control": "private, no-cache",
        },
    )


@resume_router.delete("/{resume_id}", response_model=ResumeDeleteResponse, summary="Delete resume")
async def delete_resume(
    resume_id: int,
    requester_id: int = Depends(get_requester_id),
    db: AsyncSession = Depends(get_db_session),
    object_store: ObjectStore | None = Depends(get_object_store),
):
    try:
        await ResumeService(db, object_store).delete_resume(resume_id, requester_id)
    except ResumeServiceError as e:
        raise _http_error(e)
    return ResumeDeleteResponse(message="Resume deleted successfully")
