from pydantic import BaseModel, BeforeValidator, EmailStr, Field
from typing import Annotated, Optional
from uuid import uuid4
from datetime import datetime

from app.models.common import CamelModel


def _now() -> str:
    return datetime.utcnow().isoformat(timespec="seconds")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalEmail = Annotated[Optional[EmailStr], BeforeValidator(_blank_to_none)]


# Request bodies keep every field optional so that AuthService can report
# missing fields with its own message. A blank email counts as missing.
class UserSignUp(CamelModel):
    name: Optional[str] = None
    email: OptionalEmail = None
    password: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserSignIn(CamelModel):
    email: OptionalEmail = None
    password: Optional[str] = None


class UserUpdate(CamelModel):
    name: Optional[str] = None
    email: OptionalEmail = None
    password: Optional[str] = None
    profile_image_url: Optional[str] = None


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: str
    password_hash: str
    profile_image_url: Optional[str] = None
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)


class UserPublic(CamelModel):
    id: str
    name: str
    email: str
    profile_image_url: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_db(cls, user: UserInDB) -> "UserPublic":
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            profile_image_url=user.profile_image_url,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthResponse(CamelModel):
    id: str
    user: UserPublic
    token: str


class ImageResponse(CamelModel):
    image_url: Optional[str] = None
