from typing import Optional

from pydantic import EmailStr, Field

from .booking import CamelModel


class RegisterIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class LoginIn(CamelModel):
    email: EmailStr
    password: str


class TokenOut(CamelModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(CamelModel):
    id: int
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_admin: bool
    has_course_access: bool
