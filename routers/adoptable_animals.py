from typing import List, Optional

import structlog
from fastapi import APIRouter, Request, Response
from sqlalchemy import or_
from sqlmodel import Session, select

from config import SettingsDep
from db import SessionDep, like_pattern, remove, save
from errors import ForbiddenError, NotFoundError, StorageError
from models import AdoptableAnimal, User
from schemas import AdoptableAnimalCreate, AdoptableAnimalRead, AdoptionStatusUpdate
from uploads import discard_upload, store_upload
from .auth import NgoDep
from .common import parse_payload, read_submission

router = APIRouter(tags=["adoptable-animals"])
logger = structlog.get_logger(__name__)


def load_available_animals(
    session: Session, search: Optional[str] = None
) -> List[AdoptableAnimal]:
    """
    Public listings: only animals still available, newest first.
    `search` matches name, animal type or description, ignoring case.
    """
    query = select(AdoptableAnimal).where(AdoptableAnimal.status == "available")

    if search:
        pattern = like_pattern(search.strip())
        query = query.where(
            or_(
                AdoptableAnimal.name.ilike(pattern, escape="\\"),
                AdoptableAnimal.animal_type.ilike(pattern, escape="\\"),
                AdoptableAnimal.description.ilike(pattern, escape="\\"),
            )
        )

    query = query.order_by(AdoptableAnimal.listed_at.desc(), AdoptableAnimal.id.desc())
    return session.exec(query).all()


def load_ngo_animals(session: Session, ngo: User) -> List[AdoptableAnimal]:
    query = (
        select(AdoptableAnimal)
        .where(AdoptableAnimal.listed_by_id == ngo.id)
        .order_by(AdoptableAnimal.listed_at.desc(), AdoptableAnimal.id.desc())
    )
    return session.exec(query).all()


def _get_owned(session: Session, animal_id: int, ngo: User) -> AdoptableAnimal:
    animal = session.get(AdoptableAnimal, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found")

    if animal.listed_by_id != ngo.id:
        raise ForbiddenError("You can only manage animals your NGO listed.")

    return animal


@router.get("/api/adoptable-animals", response_model=List[AdoptableAnimalRead])
def list_adoptable_animals(session: SessionDep, search: Optional[str] = None):
    """
    List animals available for adoption. No login required.
    """
    return load_available_animals(session, search)


@router.get("/api/ngo/adoptable-animals", response_model=List[AdoptableAnimalRead])
def list_my_adoptable_animals(session: SessionDep, user: NgoDep):
    """
    Every listing of the calling NGO, whatever its status.
    """
    return load_ngo_animals(session, user)


@router.get("/api/adoptable-animals/{animal_id}", response_model=AdoptableAnimalRead)
def get_adoptable_animal(animal_id: int, session: SessionDep):
    animal = session.get(AdoptableAnimal, animal_id)
    if animal is None:
        raise NotFoundError("Animal not found")
    return animal


@router.post(
    "/api/adoptable-animals",
    response_model=AdoptableAnimalRead,
    status_code=201,
)
async def create_adoptable_animal(
    request: Request,
    session: SessionDep,
    settings: SettingsDep,
    user: NgoDep,
):
    """
    List an animal for adoption under the calling NGO.
    Multipart form with an optional 'photo' file.
    """
    data, photo = await read_submission(request)
    animal_in = parse_payload(AdoptableAnimalCreate, data)

    photo_url = await store_upload(photo, settings) if photo is not None else None

    animal = AdoptableAnimal(
        **animal_in.model_dump(),
        photo_url=photo_url,
        listed_by_id=user.id,
        status="available",
    )

    try:
        save(session, animal)
    except StorageError:
        discard_upload(photo_url, settings)
        raise

    logger.info("adoption_listed", animal_id=animal.id, ngo_id=user.id)
    return animal


@router.patch(
    "/api/adoptable-animals/{animal_id}/status",
    response_model=AdoptableAnimalRead,
)
def update_adoptable_animal_status(
    animal_id: int,
    update: AdoptionStatusUpdate,
    session: SessionDep,
    user: NgoDep,
):
    animal = _get_owned(session, animal_id, user)

    previous = animal.status
    animal.status = update.status
    save(session, animal)

    logger.info(
        "adoption_status_changed",
        animal_id=animal.id,
        old_status=previous,
        new_status=animal.status,
    )
    return animal


@router.delete("/api/adoptable-animals/{animal_id}", status_code=204)
def delete_adoptable_animal(
    animal_id: int,
    session: SessionDep,
    settings: SettingsDep,
    user: NgoDep,
):
    """
    Remove a listing and its photo. Only the NGO that listed it may do this.
    """
    animal = _get_owned(session, animal_id, user)

    photo_url = animal.photo_url
    remove(session, animal)
    discard_upload(photo_url, settings)

    logger.info("adoption_deleted", animal_id=animal_id, ngo_id=user.id)
    return Response(status_code=204)
