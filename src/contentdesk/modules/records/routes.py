"""Record API routes.

All routes act on the calling session's view. Edits return as soon as the
view is updated; the store catches up after the quiet period.
"""

from datetime import date

from fastapi import Query, status

from contentdesk.modules.records import router
from contentdesk.modules.records.schemas import (
    ApproveAllResponse,
    CaptionRequest,
    FieldEdit,
    GenerateRecordsRequest,
    GenerateRecordsResponse,
    RecordCreate,
    RecordListResponse,
    RecordSnapshot,
)
from contentdesk.modules.sessions.dependencies import AgencySession, CurrentSession
from contentdesk.modules.sessions.session import DeskSession


def _listing(desk: DeskSession) -> RecordListResponse:
    records = desk.records
    return RecordListResponse(items=records, total=len(records), tenant_id=desk.scope.tenant_id)


@router.get(
    "",
    response_model=RecordListResponse,
    summary="List records in view",
    description="Records of the session's scope, oldest scheduling date first, "
    "including edits that are not stored yet.",
)
async def list_records(desk: CurrentSession) -> RecordListResponse:
    """List the session's view."""
    return _listing(desk)


@router.post(
    "",
    response_model=RecordSnapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Create a record",
    description="Agency sessions only. Written immediately.",
)
async def create_record(data: RecordCreate, desk: AgencySession) -> RecordSnapshot:
    """Create a record."""
    return await desk.create_record(data)


@router.post(
    "/generate",
    response_model=GenerateRecordsResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate Draft records",
    description="Agency sessions only. Asks the caption model for post ideas and "
    "writes one Draft record per idea, dated from the start date onwards.",
)
async def generate_records(
    data: GenerateRecordsRequest,
    desk: AgencySession,
) -> GenerateRecordsResponse:
    """Generate Draft records."""
    records = await desk.generate_records(
        data.tenant_id,
        data.count,
        data.start,
        every_days=data.every_days,
        guidelines=data.guidelines,
    )
    return GenerateRecordsResponse(items=records, total=len(records))


@router.post(
    "/reload",
    response_model=RecordListResponse,
    summary="Reload the view",
)
async def reload_records(desk: CurrentSession) -> RecordListResponse:
    """Refetch the session's view from the store."""
    await desk.reload()
    return _listing(desk)


@router.post(
    "/approve-all",
    response_model=ApproveAllResponse,
    summary="Approve every record in view",
    description="Each record not yet Approved or Posted gets its own status write.",
)
async def approve_all(
    desk: CurrentSession,
    start: date | None = Query(None, description="First scheduling date to include"),
    end: date | None = Query(None, description="Last scheduling date to include"),
) -> ApproveAllResponse:
    """Approve every record in view."""
    return ApproveAllResponse(approved=desk.approve_all(start, end))


@router.patch(
    "/{record_id}",
    response_model=RecordSnapshot,
    summary="Edit one field",
    description="Shown immediately; stored after the quiet period.",
)
async def edit_record(record_id: str, data: FieldEdit, desk: CurrentSession) -> RecordSnapshot:
    """Apply one field edit."""
    return desk.apply_edit(record_id, data.field, data.value)


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a record",
    description="Agency sessions only. Irreversible.",
)
async def delete_record(record_id: str, desk: AgencySession) -> None:
    """Delete a record."""
    await desk.delete_record(record_id)


@router.post(
    "/{record_id}/caption",
    response_model=RecordSnapshot,
    summary="Generate a caption",
    description="Writes a generated caption and hashtags for the record's image.",
)
async def generate_caption(
    record_id: str,
    desk: CurrentSession,
    data: CaptionRequest | None = None,
) -> RecordSnapshot:
    """Generate caption and hashtags."""
    return await desk.generate_caption(record_id, data.guidelines if data else None)
