from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["individual", "ngo"]
Urgency = Literal["urgent", "non-urgent"]
ReportStatus = Literal["pending", "in-progress", "resolved", "adoptable"]
Gender = Literal["male", "female", "unknown"]
Vaccinated = Literal["yes", "no", "partial"]
AdoptionStatus = Literal["available", "pending", "adopted"]


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


# --- accounts ---


class UserCreate(ApiModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=2)
    role: Role = "individual"
    ngo_name: Optional[str] = None
    ngo_registration: Optional[str] = None
    contact_phone: Optional[str] = None
    location: Optional[str] = None


class UserRead(ApiModel):
    id: int
    username: str
    full_name: str
    role: Role
    ngo_name: Optional[str] = None
    ngo_registration: Optional[str] = None
    contact_phone: Optional[str] = None
    location: Optional[str] = None


class LoginData(ApiModel):
    username: str
    password: str


# --- reported animals ---


class ReportedAnimalCreate(ApiModel):
    animal_type: str = Field(min_length=1)
    urgency: Urgency
    description: str = Field(min_length=10)
    location: str = Field(min_length=3)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class ReportedAnimalRead(ApiModel):
    id: int
    animal_type: str
    urgency: Urgency
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photo_url: Optional[str] = None
    status: ReportStatus
    reported_by_id: int
    assigned_to_id: Optional[int] = None
    reported_at: datetime


class ReportStatusUpdate(ApiModel):
    status: ReportStatus


# --- adoptable animals ---


class AdoptableAnimalCreate(ApiModel):
    name: str = Field(min_length=1)
    animal_type: str = Field(min_length=1)
    gender: Gender
    age: str = Field(min_length=1)
    vaccinated: Vaccinated
    description: str = Field(min_length=10)


class AdoptableAnimalRead(ApiModel):
    id: int
    name: str
    animal_type: str
    gender: Gender
    age: str
    vaccinated: Vaccinated
    description: str
    photo_url: Optional[str] = None
    status: AdoptionStatus
    listed_by_id: int
    listed_at: datetime


class AdoptionStatusUpdate(ApiModel):
    status: AdoptionStatus


# --- veterinarians ---


class VeterinarianCreate(ApiModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    location: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None
    hours: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    services: List[str] = Field(default_factory=list)


class VeterinarianRead(ApiModel):
    id: int
    name: str
    address: str
    location: str
    phone: str
    email: Optional[str] = None
    hours: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    services: List[str] = Field(default_factory=list)


# --- geocoding ---


class ReverseGeocodeResult(ApiModel):
    latitude: float
    longitude: float
    address: str
    in_service_region: bool
    warning: Optional[str] = None
    error: Optional[str] = None
