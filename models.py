from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    full_name: str
    role: str = "individual"  # individual | ngo

    ngo_name: Optional[str] = None
    ngo_registration: Optional[str] = None
    contact_phone: Optional[str] = None
    location: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)


class UserSession(SQLModel, table=True):
    # opaque random id; the cookie carries it signed
    id: str = Field(primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)


class ReportedAnimal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    reported_by_id: int = Field(foreign_key="user.id", index=True)
    assigned_to_id: Optional[int] = Field(default=None, foreign_key="user.id")

    animal_type: str
    urgency: str  # urgent | non-urgent
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo_url: Optional[str] = None
    status: str = "pending"  # pending | in-progress | resolved | adoptable

    reported_at: datetime = Field(default_factory=utcnow)


class AdoptableAnimal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    listed_by_id: int = Field(foreign_key="user.id", index=True)

    name: str
    animal_type: str
    gender: str  # male | female | unknown
    age: str
    vaccinated: str  # yes | no | partial
    description: str
    photo_url: Optional[str] = None
    status: str = "available"  # available | pending | adopted

    listed_at: datetime = Field(default_factory=utcnow)


class Veterinarian(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    address: str
    location: str
    phone: str
    email: Optional[str] = None
    hours: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    services: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
