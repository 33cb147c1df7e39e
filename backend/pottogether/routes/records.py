"""
PotTogether Backend: Record Route Handlers
===========================================

What:  Start a cooking record, finish it, and read records back.
How:   Finishing is a multipart PATCH: the optional photo goes to the object
       store first, and only its URL reaches RecordService. If the service
       rejects the transition the stored photo is deleted again.

Upload flow (PATCH /api/records/{id}):
    ┌──────────┐    ┌──────────────┐    ┌───────────────────┐
    │  photo   │───▶│ ObjectStore  │───▶│ complete_record   │
    │ (form)   │    │ put → URL    │    │ (status == 0 only)│
    └──────────┘    └──────────────┘    └───────────────────┘
                            ▲                     │ raises
                            └──── delete(key) ◀───┘
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pottogether.database import get_db_session
from pottogether.identity import get_current_user_id
from pottogether.schemas.common import Envelope
from pottogether.schemas.record import RecordCreated, RecordCreateRequest, RecordDetail
from pottogether.services.object_store import ObjectStore, get_object_store
from pottogether.services.record_service import record_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["Records"])


@router.post(
    "",
    status_code=201,
    response_model=Envelope[RecordCreated],
    summary="Start cooking an ingredient",
)
async def create_record(
    body: RecordCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RecordCreated]:
    created = await record_service.create_record(
        db,
        user_id=user_id,
        room_id=body.room_id,
        pot_id=body.pot_id,
        ingredient_id=body.ingredient_id,
    )
    return Envelope[RecordCreated].ok(created)


@router.get(
    "",
    response_model=Envelope[List[RecordDetail]],
    summary="The caller's records, active first",
)
async def list_my_records(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[List[RecordDetail]]:
    records = await record_service.list_records(db, owner_kind="user", owner_id=user_id)
    return Envelope[List[RecordDetail]].ok(records)


@router.get(
    "/{record_id}",
    response_model=Envelope[RecordDetail],
    summary="One record with its ingredient",
)
async def get_record(
    record_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Envelope[RecordDetail]:
    record = await record_service.get_record_detail(db, record_id)
    return Envelope[RecordDetail].ok(record)


@router.patch(
    "/{record_id}",
    response_model=Envelope[RecordDetail],
    summary="Finish a record (completed or interrupted)",
    description=(
        "Multipart form. `status` is 1 (completed) or 2 (interrupted). "
        "A record can be finished once; later attempts return 409."
    ),
)
async def complete_record(
    record_id: int,
    status: int = Form(..., description="1 completed, 2 interrupted"),
    interval: int = Form(..., description="Seconds actually cooked"),
    interrupt: int = Form(default=0, description="Number of interruptions"),
    caption: Optional[str] = Form(default=None),
    image: Optional[UploadFile] = File(default=None, description="Photo of the result"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    store: ObjectStore = Depends(get_object_store),
) -> Envelope[RecordDetail]:
    stored = None
    if image is not None and image.filename:
        try:
            content = await image.read()
            stored = await store.put(
                kind="records",
                name_hint=f"user-{user_id}",
                filename=image.filename,
                content=content,
                content_length=image.size,
            )
        finally:
            await image.close()

    try:
        record = await record_service.complete_record(
            db,
            record_id=record_id,
            image=stored.url if stored else None,
            caption=caption,
            interval=interval,
            interrupt=interrupt,
            status=status,
        )
    except Exception:
        if stored is not None:
            await store.delete(stored.key)
        raise

    return Envelope[RecordDetail].ok(record)
