from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


class Settings(BaseModel):
    backend_url: str = Field(default="http://127.0.0.1:3000/api")
    backend_timeout: float = Field(default=30.0)
    auth_secret: str = Field(default="change-me")
    auth_algorithm: str = Field(default="HS256")
    timezone: str = Field(default="UTC")
    booking_window_days: int = Field(default=7, ge=0)
    invitation_ttl_days: int = Field(default=30, ge=1)
    public_base_url: str = Field(default="http://localhost:5173")


def _default(name: str):
    return Settings.model_fields[name].default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        backend_url=os.getenv("BACKEND_URL", _default("backend_url")),
        backend_timeout=float(os.getenv("BACKEND_TIMEOUT", _default("backend_timeout"))),
        auth_secret=os.getenv("AUTH_SECRET", _default("auth_secret")),
        auth_algorithm=os.getenv("AUTH_ALGORITHM", _default("auth_algorithm")),
        timezone=os.getenv("TIMEZONE", _default("timezone")),
        booking_window_days=int(os.getenv("BOOKING_WINDOW_DAYS", _default("booking_window_days"))),
        invitation_ttl_days=int(os.getenv("INVITATION_TTL_DAYS", _default("invitation_ttl_days"))),
        public_base_url=os.getenv("PUBLIC_BASE_URL", _default("public_base_url")),
    )
