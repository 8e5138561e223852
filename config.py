import os
import secrets
from pathlib import Path
from typing import Annotated, Literal, Optional

from fastapi import Depends, Request
from pydantic import BaseModel, Field

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseModel):
    mode: Literal["development", "production"] = "development"
    database_url: Optional[str] = None
    port: int = 5000

    secret_key: str = Field(default_factory=lambda: secrets.token_hex(32))
    session_max_age: int = 60 * 60 * 8

    upload_dir: Path = BASE_DIR / "uploads"
    max_upload_bytes: int = 5 * 1024 * 1024

    geocoder_url: str = "https://nominatim.openstreetmap.org/reverse"
    service_region: str = "Maharashtra"

    @property
    def is_development(self) -> bool:
        return self.mode == "development"


def load_settings() -> Settings:
    """
    Build settings from the environment.
    APP_ENV wins over NODE_ENV; anything other than "production" is development.
    """
    mode = os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"
    mode = "production" if mode == "production" else "development"

    values: dict = {
        "mode": mode,
        "database_url": os.getenv("DATABASE_URL") or None,
        "port": int(os.getenv("PORT", "5000" if mode == "development" else "3000")),
    }

    if os.getenv("SECRET_KEY"):
        values["secret_key"] = os.environ["SECRET_KEY"]
    if os.getenv("SESSION_MAX_AGE"):
        values["session_max_age"] = int(os.environ["SESSION_MAX_AGE"])
    if os.getenv("UPLOAD_DIR"):
        values["upload_dir"] = Path(os.environ["UPLOAD_DIR"])
    if os.getenv("MAX_UPLOAD_BYTES"):
        values["max_upload_bytes"] = int(os.environ["MAX_UPLOAD_BYTES"])
    if os.getenv("GEOCODER_URL"):
        values["geocoder_url"] = os.environ["GEOCODER_URL"]
    if os.getenv("SERVICE_REGION"):
        values["service_region"] = os.environ["SERVICE_REGION"]

    return Settings(**values)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_settings)]
