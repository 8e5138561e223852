from typing import List, Optional

import structlog
from fastapi import APIRouter, Query
from sqlalchemy import or_
from sqlmodel import Session, select

from db import SessionDep, like_pattern, save
from errors import NotFoundError
from models import Veterinarian
from schemas import VeterinarianCreate, VeterinarianRead
from .auth import CurrentUserDep

router = APIRouter(prefix="/api/veterinarians", tags=["veterinarians"])
logger = structlog.get_logger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def find_nearby_veterinarians(
    session: Session, location: str, limit: int = DEFAULT_LIMIT
) -> List[Veterinarian]:
    """
    "Nearby" is a text match: the search string must appear in the
    address or the location field, ignoring case. No distance is computed.
    """
    pattern = like_pattern(location.strip())
    query = (
        select(Veterinarian)
        .where(
            or_(
                Veterinarian.address.ilike(pattern, escape="\\"),
                Veterinarian.location.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Veterinarian.id)
        .limit(limit)
    )
    return session.exec(query).all()


@router.get("", response_model=List[VeterinarianRead])
def list_veterinarians(
    session: SessionDep,
    user: CurrentUserDep,
    location: Optional[str] = None,
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
):
    """
    All veterinarians, or the nearby ones when `location` is given.
    """
    if location and location.strip():
        return find_nearby_veterinarians(session, location, limit)
    return session.exec(select(Veterinarian).order_by(Veterinarian.id)).all()


@router.get("/nearby", response_model=List[VeterinarianRead])
def nearby_veterinarians(
    session: SessionDep,
    user: CurrentUserDep,
    location: str = Query(min_length=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
):
    return find_nearby_veterinarians(session, location, limit)


@router.get("/{vet_id}", response_model=VeterinarianRead)
def get_veterinarian(vet_id: int, session: SessionDep, user: CurrentUserDep):
    vet = session.get(Veterinarian, vet_id)
    if vet is None:
        raise NotFoundError("Veterinarian not found")
    return vet


@router.post("", response_model=VeterinarianRead, status_code=201)
def create_veterinarian(
    vet_in: VeterinarianCreate,
    session: SessionDep,
    user: CurrentUserDep,
):
    """
    Add a directory entry. Any logged-in account may do this; entries are
    neither owned nor de-duplicated.
    """
    vet = Veterinarian(**vet_in.model_dump())
    save(session, vet)
    logger.info("veterinarian_created", vet_id=vet.id, created_by=user.id)
    return vet
