"""
API routes for students (CRUD, reminder points, live list).
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from student_registry.api.deps import get_directory
from student_registry.core.config import get_config
from student_registry.core.database import get_db
from student_registry.core.logging import get_logger
from student_registry.core.security import USER_HEADER, UserContext
from student_registry.schemas import (
    PointsRequest,
    PointsResponse,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
)
from student_registry.services.aggregates import filter_students, has_priority
from student_registry.services.directory import (
    REQUIRED_FIELDS,
    StudentDirectory,
    StudentNotFoundError,
)
from student_registry.services.normalizer import derive_age_fields

logger = get_logger()

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("", response_model=List[StudentResponse])
def list_students(
    level: Optional[str] = Query(None, description="Filter by level"),
    status: Optional[str] = Query(None, description="Filter by status value"),
    gender: Optional[str] = Query(None, description="Filter by gender value"),
    sheikh: Optional[str] = Query(None, description="Filter by assigned sheikh"),
    search: Optional[str] = Query(None, description="Name, guardian or page number"),
    directory: StudentDirectory = Depends(get_directory),
):
    """List students, newest registration first."""
    try:
        return filter_students(
            directory.list_all(),
            level=level,
            status=status,
            gender=gender,
            sheikh=sheikh,
            search=search,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(student_id: str, directory: StudentDirectory = Depends(get_directory)):
    """Get a student by ID."""
    try:
        return directory.get(student_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=StudentResponse, status_code=201)
def create_student(payload: StudentCreate, directory: StudentDirectory = Depends(get_directory)):
    """Register a new student; age and age group follow from the birth date."""
    record = payload.model_dump()
    record["assigned_sheikh"] = record.get("assigned_sheikh") or None
    record.update(derive_age_fields(payload.birth_date))
    try:
        return directory.create(record)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{student_id}", response_model=StudentResponse)
def update_student(
    student_id: str,
    payload: StudentUpdate,
    directory: StudentDirectory = Depends(get_directory),
):
    """Update the fields sent; age and age group are recomputed with a new birth date."""
    fields = payload.model_dump(exclude_unset=True)
    cleared = sorted(name for name, value in fields.items() if value is None and name in REQUIRED_FIELDS)
    if cleared:
        raise HTTPException(status_code=400, detail=f"Fields cannot be empty: {', '.join(cleared)}")
    if "assigned_sheikh" in fields:
        fields["assigned_sheikh"] = fields["assigned_sheikh"] or None
    if fields.get("birth_date") is not None:
        fields.update(derive_age_fields(fields["birth_date"]))
    try:
        return directory.update(student_id, fields)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{student_id}", status_code=204)
def delete_student(student_id: str, directory: StudentDirectory = Depends(get_directory)):
    """Delete a student permanently."""
    try:
        directory.delete(student_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return None


@router.post("/{student_id}/points", response_model=PointsResponse)
def add_points(
    student_id: str,
    payload: Optional[PointsRequest] = None,
    directory: StudentDirectory = Depends(get_directory),
):
    """Add reminder points (the configured increment unless a delta is sent)."""
    school = get_config().school
    delta = payload.delta if payload and payload.delta else school.points_increment
    try:
        total = directory.add_points(student_id, delta, atomic=True)
        student = directory.get(student_id)
    except StudentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return PointsResponse(
        id=student.id,
        full_name=student.full_name,
        reminder_points=total,
        has_priority=has_priority(student, school.priority_threshold),
    )


@router.websocket("/live")
async def live_students(websocket: WebSocket, db: Session = Depends(get_db)):
    """
    Stream the user's full student list.

    The current list is sent on connect and again after every change, as
    {"type": "snapshot", "students": [...]}. The user id is read from the
    same header as the HTTP routes; without it the socket is closed with 1008.
    """
    user_id = (websocket.headers.get(USER_HEADER) or "").strip()
    if not user_id:
        logger.warning("Live list connection rejected: no user id")
        await websocket.close(code=1008, reason="Authentication required")
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(snapshot):
        # Writers may run in worker threads
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    async def forward():
        while True:
            snapshot = await queue.get()
            await websocket.send_json({"type": "snapshot", "students": jsonable_encoder(snapshot)})

    directory = StudentDirectory(db, UserContext(user_id=user_id))
    subscription = directory.subscribe(on_change)
    sender = asyncio.create_task(forward())
    logger.info(f"Live list connected for owner {user_id}")
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"Live list disconnected for owner {user_id}")
    finally:
        subscription.unsubscribe()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception(f"Live list delivery failed for owner {user_id}")
