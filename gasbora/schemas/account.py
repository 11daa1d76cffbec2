# gasbora/schemas/account.py
from __future__ import annotations

import datetime as dt
import enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, enum.Enum):
    BUYER   = "buyer"
    SELLER  = "seller"
    STATION = "station"
    ADMIN   = "admin"


# roles allowed to publish listings
SELLING_ROLES = frozenset({Role.SELLER, Role.STATION, Role.ADMIN})


class Session(BaseModel):
    """Authenticated identity passed explicitly to every operation that needs one."""

    user_id: str
    email: Optional[str] = None
    access_token: str
    expires_at: Optional[dt.datetime] = None


class Profile(BaseModel):
    user_id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def initials(self) -> str:
        if not self.full_name:
            return "U"
        return "".join(part[0] for part in self.full_name.split()[:2]).upper()


# ---------- forms ----------

class LoginInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    password: str = Field(min_length=6)


class RegisterInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    password: str = Field(min_length=6)
    role: Literal["buyer", "seller", "station"] = "buyer"


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    full_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
