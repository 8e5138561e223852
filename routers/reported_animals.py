from typing import List, Optional

import structlog
from fastapi import APIRouter, Request
from sqlmodel import Session, select

from config import SettingsDep
from db import SessionDep, save
from errors import ForbiddenError, NotFoundError, StorageError
from models import ReportedAnimal, User
from schemas import (
    ReportedAnimalCreate,
    ReportedAnimalRead,
    ReportStatus,
    ReportStatusUpdate,
    Urgency,
)
from uploads import discard_upload, store_upload
from .auth import CurrentUserDep, IndividualDep, NgoDep
from .common import parse_payload, read_submission

router = APIRouter(prefix="/api/reported-animals", tags=["reported-animals"])
logger = structlog.get_logger(__name__)


def load_reported_animals(
    session: Session,
    user: User,
    status: Optional[str] = None,
    urgency: Optional[str] = None,
) -> List[ReportedAnimal]:
    """
    NGOs see every case, individuals only the ones they reported.
    Newest first.
    """
    query = select(ReportedAnimal)

    if user.role != "ngo":
        query = query.where(ReportedAnimal.reported_by_id == user.id)

    if status is not None:
        query = query.where(ReportedAnimal.status == status)

    if urgency is not None:
        query = query.where(ReportedAnimal.urgency == urgency)

    query = query.order_by(ReportedAnimal.reported_at.desc(), ReportedAnimal.id.desc())
    return session.exec(query).all()


@router.get("", response_model=List[ReportedAnimalRead])
def list_reported_animals(
    session: SessionDep,
    user: CurrentUserDep,
    status: Optional[ReportStatus] = None,
    urgency: Optional[Urgency] = None,
):
    """
    List reported animals, optionally filtered by status and urgency.
    """
    return load_reported_animals(session, user, status=status, urgency=urgency)


@router.get("/{case_id}", response_model=ReportedAnimalRead)
def get_reported_animal(case_id: int, session: SessionDep, user: CurrentUserDep):
    """
    Get a single case by ID. Individuals may only open their own.
    """
    case = session.get(ReportedAnimal, case_id)
    if case is None:
        raise NotFoundError("Animal not found")

    if user.role != "ngo" and case.reported_by_id != user.id:
        raise ForbiddenError("You can only view animals you reported.")

    return case


@router.post("", response_model=ReportedAnimalRead, status_code=201)
async def create_reported_animal(
    request: Request,
    session: SessionDep,
    settings: SettingsDep,
    user: IndividualDep,
):
    """
    Report an injured or stray animal.
    Multipart form with an optional 'photo' file; the fields are validated
    before anything is written to disk.
    """
    data, photo = await read_submission(request)
    case_in = parse_payload(ReportedAnimalCreate, data)

    photo_url = await store_upload(photo, settings) if photo is not None else None

    case = ReportedAnimal(
        **case_in.model_dump(),
        photo_url=photo_url,
        reported_by_id=user.id,
        status="pending",
    )

    try:
        save(session, case)
    except StorageError:
        discard_upload(photo_url, settings)
        raise

    logger.info(
        "animal_reported",
        case_id=case.id,
        reported_by=user.id,
        urgency=case.urgency,
        has_photo=photo_url is not None,
    )
    return case


@router.patch("/{case_id}/status", response_model=ReportedAnimalRead)
def update_reported_animal_status(
    case_id: int,
    update: ReportStatusUpdate,
    session: SessionDep,
    user: NgoDep,
):
    """
    Move a case to any status. The NGO making the change becomes its assignee.
    """
    case = session.get(ReportedAnimal, case_id)
    if case is None:
        raise NotFoundError("Animal not found")

    previous = case.status
    case.status = update.status
    case.assigned_to_id = user.id
    save(session, case)

    logger.info(
        "case_status_changed",
        case_id=case.id,
        old_status=previous,
        new_status=case.status,
        ngo_id=user.id,
    )
    return case
